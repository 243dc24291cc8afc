"""Product model."""
from sqlalchemy import Column, String, Boolean, Integer, Numeric, DateTime, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from perks.database import Base, Identifier


class Product(Base):
    """Redeemable catalog product."""

    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
    )

    id = Column(Identifier, primary_key=True, autoincrement=True)
    sku = Column(String(80), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    colors = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    # [{"minQty": 1, "maxQty": 9, "price": "900.00"}, {"minQty": 10, "maxQty": null, ...}]
    price_slabs = Column(JSON, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    csr_support = Column(Boolean, nullable=False, default=False)
    backup_product_id = Column(Identifier, ForeignKey('product.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    backup_product = relationship('Product', remote_side=[id], foreign_keys=[backup_product_id])

    @validates('price_slabs')
    def _validate_price_slabs(self, key, slabs):
        from perks.services.pricing_service import validate_price_slabs
        if not slabs:
            return None
        return validate_price_slabs(slabs)

    @validates('stock')
    def _validate_stock(self, key, stock):
        if stock is not None and int(stock) < 0:
            raise ValueError('stock cannot be negative')
        return stock

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'sku': self.sku,
            'name': self.name,
            'price': str(self.price) if self.price is not None else None,
            'stock': self.stock,
            'colors': self.colors or [],
            'images': self.images or [],
            'priceSlabs': self.price_slabs or [],
            'isActive': self.active,
            'csrSupport': self.csr_support,
            'backupProductId': self.backup_product_id,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}')>"
