"""Branding model - single settings row for the portal."""
from sqlalchemy import Column, String, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from perks.database import Base, Identifier

UNLIMITED_SELECTIONS = -1


class Branding(Base):
    """Portal-wide settings: look and feel plus checkout rules."""

    __tablename__ = 'branding'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    company_name = Column(String(200), nullable=False, default='TechCorp')
    logo_url = Column(String(500), nullable=True)
    primary_color = Column(String(20), nullable=True, default='#1e40af')
    accent_color = Column(String(20), nullable=True, default='#f97316')
    currency_per_point = Column(Numeric(10, 2), nullable=False, default=1, server_default='1.00')
    max_selections_per_user = Column(Integer, nullable=False, default=1, server_default='1')  # -1 = unlimited
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<Branding(id={self.id}, currency_per_point={self.currency_per_point}, "
            f"max_selections_per_user={self.max_selections_per_user})>"
        )
