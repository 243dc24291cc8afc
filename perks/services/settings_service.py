"""Checkout settings read from the branding row."""
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy.orm import Session

from perks.models import Branding, UNLIMITED_SELECTIONS

CACHE_MODULE = 'settings'
CACHE_KEY = 'checkout'

DEFAULT_CURRENCY_PER_POINT = Decimal('1.00')
DEFAULT_MAX_SELECTIONS = 1


@dataclass(frozen=True)
class CheckoutSettings:
    """Exchange rate and selection limit handed to the checkout functions."""
    currency_per_point: Decimal = DEFAULT_CURRENCY_PER_POINT
    max_selections: int = DEFAULT_MAX_SELECTIONS
    company_name: str = 'TechCorp'

    @property
    def unlimited(self) -> bool:
        return self.max_selections == UNLIMITED_SELECTIONS

    def to_dict(self):
        return {
            'companyName': self.company_name,
            'currencyPerPoint': str(self.currency_per_point),
            'maxSelectionsPerUser': self.max_selections,
        }


def _load_settings(session: Session) -> dict:
    branding = session.query(Branding).order_by(Branding.id).first()
    if not branding:
        return {
            'currency_per_point': DEFAULT_CURRENCY_PER_POINT,
            'max_selections': DEFAULT_MAX_SELECTIONS,
            'company_name': 'TechCorp',
        }

    rate = Decimal(str(branding.currency_per_point)) if branding.currency_per_point else DEFAULT_CURRENCY_PER_POINT
    if rate <= 0:
        current_app.logger.warning(f"[SETTINGS] Invalid currency_per_point {rate}, using default")
        rate = DEFAULT_CURRENCY_PER_POINT

    max_selections = branding.max_selections_per_user
    if max_selections is None:
        max_selections = DEFAULT_MAX_SELECTIONS

    return {
        'currency_per_point': rate,
        'max_selections': int(max_selections),
        'company_name': branding.company_name,
    }


def get_checkout_settings(session: Session) -> CheckoutSettings:
    """Current checkout settings (cache-aside over the branding row)."""
    from perks.services.cache_service import get_cache

    values = get_cache().memoize(
        CACHE_MODULE,
        CACHE_KEY,
        lambda: _load_settings(session),
        ttl=current_app.config.get('CACHE_SETTINGS_TTL', 30)
    )
    return CheckoutSettings(**values)


def update_checkout_settings(session: Session, currency_per_point=None, max_selections=None) -> Branding:
    """Upsert the branding row and drop the cached settings. Caller commits."""
    from perks.services.cache_service import get_cache

    branding = session.query(Branding).order_by(Branding.id).first()
    if not branding:
        branding = Branding()
        session.add(branding)

    if currency_per_point is not None:
        rate = Decimal(str(currency_per_point))
        if rate <= 0:
            raise ValueError('currency_per_point must be greater than 0')
        branding.currency_per_point = rate

    if max_selections is not None:
        if max_selections != UNLIMITED_SELECTIONS and max_selections < 0:
            raise ValueError('max_selections must be -1 (unlimited) or a non-negative integer')
        branding.max_selections_per_user = max_selections

    session.flush()
    get_cache().delete(CACHE_MODULE, CACHE_KEY)
    return branding
