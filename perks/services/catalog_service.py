"""Catalog Service - products visible to employees."""
from typing import Any, Dict, List

from sqlalchemy.orm import Session, joinedload

from perks.models import Product
from perks.exceptions import NotFoundError


def _is_orderable(product: Product) -> bool:
    return bool(product and product.active and (product.stock or 0) > 0)


def list_visible_products(session: Session) -> List[Dict[str, Any]]:
    """
    Active catalog with backup substitution.

    A product that ran out of stock is replaced by its backup product when the
    backup is active and in stock. Products that only exist as someone's
    backup are not listed on their own.
    """
    products = (
        session.query(Product)
        .options(joinedload(Product.backup_product))
        .filter(Product.active.is_(True))
        .order_by(Product.id)
        .all()
    )

    backup_ids = {p.backup_product_id for p in products if p.backup_product_id}
    visible = []
    for product in products:
        if product.id in backup_ids:
            continue

        if (product.stock or 0) <= 0 and _is_orderable(product.backup_product):
            entry = product.backup_product.to_dict()
            entry['isBackup'] = True
            entry['originalProductId'] = product.id
        else:
            entry = product.to_dict()
            entry['isBackup'] = False
        visible.append(entry)

    return visible


def list_csr_products(session: Session) -> List[Dict[str, Any]]:
    """Active products flagged for CSR support."""
    products = (
        session.query(Product)
        .filter(Product.active.is_(True), Product.csr_support.is_(True))
        .order_by(Product.id)
        .all()
    )
    return [p.to_dict() for p in products]


def get_product(session: Session, product_id: int) -> Product:
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError('Product not found')
    return product
