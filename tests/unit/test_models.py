"""
Unit tests for SQLAlchemy models.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from perks.models import (
    Employee, EmployeeSession, Product, CartItem, Order, PointsOnlyMetadata, CoPayMetadata
)


class TestEmployeeModel:
    """Tests for Employee model."""

    def test_create_employee(self, session):
        employee = Employee(first_name='Meera', last_name='Iyer', email='meera@example.com', points=120)
        session.add(employee)
        session.commit()

        assert employee.id is not None
        assert employee.full_name == 'Meera Iyer'
        assert employee.is_locked is False
        assert employee.to_dict()['points'] == 120

    def test_email_unique(self, session, employee):
        duplicate = Employee(first_name='Dup', last_name='Licate', email=employee.email)
        session.add(duplicate)

        with pytest.raises(Exception):  # IntegrityError
            session.commit()


class TestEmployeeSessionModel:
    """Tests for EmployeeSession model."""

    def test_issue_creates_unique_tokens(self, employee):
        first = EmployeeSession.issue(employee.id)
        second = EmployeeSession.issue(employee.id)

        assert first.token != second.token
        assert first.is_expired is False

    def test_expired(self, employee):
        expired = EmployeeSession(
            employee_id=employee.id,
            token='stale',
            expires_at=datetime.now() - timedelta(minutes=1)
        )
        assert expired.is_expired is True


class TestProductModel:
    """Tests for Product model."""

    def test_negative_stock_rejected(self):
        with pytest.raises(ValueError):
            Product(sku='SKU-NEG', name='Bag', price=Decimal('10'), stock=-1)

    def test_empty_slabs_stored_as_null(self):
        product = Product(sku='SKU-EMPTY', name='Bag', price=Decimal('10'), stock=1, price_slabs=[])
        assert product.price_slabs is None

    def test_backup_product_relationship(self, session, product):
        backup = Product(sku='SKU-BACKUP', name='Steel Bottle', price=Decimal('120.00'), stock=3,
                         colors=[], images=[])
        session.add(backup)
        session.flush()
        product.backup_product_id = backup.id
        session.commit()

        assert product.backup_product.name == 'Steel Bottle'
        assert product.to_dict()['backupProductId'] == backup.id


class TestCartItemModel:
    """Tests for CartItem model."""

    def test_unique_per_product_and_color(self, session, employee, product):
        session.add(CartItem(employee_id=employee.id, product_id=product.id, selected_color='Blue', quantity=1))
        session.commit()
        session.add(CartItem(employee_id=employee.id, product_id=product.id, selected_color='Blue', quantity=2))

        with pytest.raises(Exception):  # IntegrityError
            session.commit()


class TestOrderMetadata:
    """Tests for the order metadata variants."""

    def test_points_only(self):
        metadata = PointsOnlyMetadata(used_points=200, delivery_method='office')
        assert metadata.to_dict() == {
            'kind': 'points',
            'usedPoints': 200,
            'deliveryMethod': 'office',
            'deliveryAddress': None,
        }

    def test_copay(self):
        metadata = CoPayMetadata(
            used_points=200,
            copay_amount=150,
            payment_id='T123',
            merchant_transaction_id='TXN_1',
            delivery_method='delivery',
            delivery_address='12 MG Road'
        )
        data = metadata.to_dict()
        assert data['kind'] == 'copay'
        assert data['copayInr'] == 150
        assert data['phonepeOrderId'] == 'TXN_1'

    def test_metadata_persisted_as_json(self, session, employee, product):
        order = Order(
            order_code='ORD-2026-001',
            employee_id=employee.id,
            product_id=product.id,
            quantity=1,
            status='confirmed',
            order_date=datetime(2026, 1, 5),
            order_metadata=PointsOnlyMetadata(used_points=100, delivery_method='office').to_dict()
        )
        session.add(order)
        session.commit()
        session.expire_all()

        stored = session.get(Order, order.id)
        assert stored.order_metadata['usedPoints'] == 100
        assert stored.to_dict()['orderId'] == 'ORD-2026-001'
