"""
Unit tests for the checkout orchestrator.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from perks.models import CartItem, Employee, Order, Product
from perks.exceptions import (
    EmptyCartError, SelectionLimitReachedError, ProductUnavailableError,
    InsufficientPointsError, InvalidDeliveryError
)
from perks.services.cart_service import add_to_cart
from perks.services.checkout_service import (
    DeliveryDetails, selection_permitted, build_checkout_quote, commit_orders,
    next_order_code, place_points_order
)
from perks.services.settings_service import CheckoutSettings


UNLIMITED = CheckoutSettings(currency_per_point=Decimal('1.00'), max_selections=-1)


class TestSelectionGate:
    """Tests for selection_permitted."""

    def test_unlimited_always_permitted(self):
        assert selection_permitted(100, 5, -1) is True

    def test_within_limit(self):
        assert selection_permitted(0, 1, 1) is True
        assert selection_permitted(1, 2, 3) is True

    def test_over_limit(self):
        assert selection_permitted(1, 1, 1) is False
        assert selection_permitted(0, 2, 1) is False

    def test_zero_limit_blocks_everything(self):
        assert selection_permitted(0, 1, 0) is False


class TestDeliveryDetails:
    """Tests for DeliveryDetails.from_payload."""

    def test_defaults_to_office(self):
        delivery = DeliveryDetails.from_payload({})
        assert delivery.method == 'office'
        assert delivery.address is None

    def test_delivery_requires_address(self):
        with pytest.raises(InvalidDeliveryError):
            DeliveryDetails.from_payload({'deliveryMethod': 'delivery', 'deliveryAddress': '  '})

    def test_unknown_method_rejected(self):
        with pytest.raises(InvalidDeliveryError):
            DeliveryDetails.from_payload({'deliveryMethod': 'drone'})

    def test_delivery_with_address(self):
        delivery = DeliveryDetails.from_payload({'deliveryMethod': 'Delivery', 'deliveryAddress': ' 12 MG Road '})
        assert delivery == DeliveryDetails(method='delivery', address='12 MG Road')


class TestBuildCheckoutQuote:
    """Tests for build_checkout_quote."""

    def test_empty_cart(self, session, employee):
        with pytest.raises(EmptyCartError):
            build_checkout_quote(session, employee, UNLIMITED)

    def test_quote_sums_line_points(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 2)
        session.commit()

        quote = build_checkout_quote(session, employee, UNLIMITED)

        assert quote.points_required == 200
        assert quote.points_available == 300
        assert quote.is_covered is True
        assert quote.shortfall_points == 0
        assert quote.copay_amount == 0
        assert quote.total_price == Decimal('200.00')

    def test_points_are_ceiled_per_line(self, session, employee, product):
        other = Product(sku='SKU-OTHER', name='Pen', price=Decimal('10.00'), stock=5, colors=[], images=[])
        session.add(other)
        session.commit()
        add_to_cart(session, employee.id, product.id, None, 1)
        add_to_cart(session, employee.id, other.id, None, 1)
        session.commit()

        settings = CheckoutSettings(currency_per_point=Decimal('3.00'), max_selections=-1)
        quote = build_checkout_quote(session, employee, settings)

        # ceil(100 / 3) + ceil(10 / 3)
        assert quote.points_required == 34 + 4

    def test_shortfall_and_copay(self, session, employee, product):
        employee.points = 50
        add_to_cart(session, employee.id, product.id, 'Blue', 2)
        session.commit()

        quote = build_checkout_quote(session, employee, UNLIMITED)

        assert quote.is_covered is False
        assert quote.shortfall_points == 150
        assert quote.copay_amount == 150

    def test_selection_limit(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 1)
        add_to_cart(session, employee.id, product.id, 'Black', 1)
        session.commit()

        settings = CheckoutSettings(currency_per_point=Decimal('1.00'), max_selections=1)
        with pytest.raises(SelectionLimitReachedError):
            build_checkout_quote(session, employee, settings)

    def test_stock_dropped_after_adding(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 3)
        product.stock = 2
        session.commit()

        with pytest.raises(ProductUnavailableError) as exc_info:
            build_checkout_quote(session, employee, UNLIMITED)
        assert 'Water Bottle' in exc_info.value.message


class TestPlacePointsOrder:
    """Tests for place_points_order and commit_orders."""

    def test_points_checkout(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 2)
        session.commit()

        result = place_points_order(session, employee, UNLIMITED, DeliveryDetails())

        assert len(result.orders) == 1
        order = result.orders[0]
        assert order.order_metadata['usedPoints'] == 200
        assert order.order_metadata['kind'] == 'points'
        assert order.selected_color == 'Blue'
        assert result.employee.points == 100

        session.expire_all()
        assert session.get(Product, product.id).stock == 8
        assert session.query(CartItem).filter_by(employee_id=employee.id).count() == 0

    def test_insufficient_points_writes_nothing(self, session, employee, product):
        employee.points = 50
        add_to_cart(session, employee.id, product.id, 'Blue', 2)
        session.commit()

        with pytest.raises(InsufficientPointsError) as exc_info:
            place_points_order(session, employee, UNLIMITED, DeliveryDetails())

        assert exc_info.value.quote.copay_amount == 150
        assert session.query(Order).count() == 0
        assert session.get(Product, product.id).stock == 10

    def test_stock_race_rolls_back_everything(self, session, employee, product):
        """A conditional stock update that matches no row aborts the whole checkout."""
        add_to_cart(session, employee.id, product.id, 'Blue', 2)
        session.commit()
        quote = build_checkout_quote(session, employee, UNLIMITED)

        # Another checkout drains the stock between quote and commit
        session.query(Product).filter_by(id=product.id).update({'stock': 1})
        session.commit()

        with pytest.raises(ProductUnavailableError):
            commit_orders(session, employee, quote, lambda line: _points_metadata(line))

        session.expire_all()
        assert session.query(Order).count() == 0
        assert session.get(Employee, employee.id).points == 300
        assert session.query(CartItem).filter_by(employee_id=employee.id).count() == 1


def _points_metadata(line):
    from perks.models import PointsOnlyMetadata
    return PointsOnlyMetadata(used_points=line.points, delivery_method='office')


class TestOrderCode:
    """Tests for next_order_code."""

    def test_first_order_of_year(self, session):
        assert next_order_code(session, datetime(2026, 3, 1)) == 'ORD-2026-001'

    def test_counts_only_this_year(self, session, employee, product):
        session.add(Order(
            order_code='ORD-2025-001', employee_id=employee.id, product_id=product.id,
            quantity=1, status='confirmed', order_date=datetime(2025, 12, 31, 23, 0)
        ))
        session.add(Order(
            order_code='ORD-2026-001', employee_id=employee.id, product_id=product.id,
            quantity=1, status='confirmed', order_date=datetime(2026, 1, 2)
        ))
        session.commit()

        assert next_order_code(session, datetime(2026, 6, 1)) == 'ORD-2026-002'
