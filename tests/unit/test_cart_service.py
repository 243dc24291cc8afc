"""
Unit tests for the cart service.
"""

import pytest
from decimal import Decimal

from perks.models import CartItem, Employee, Product
from perks.exceptions import BusinessLogicError, NotFoundError, InvalidQuantityError, OutOfStockError
from perks.services.cart_service import (
    add_to_cart, set_quantity, remove_item, clear_cart, get_cart_with_products
)
from perks.services.settings_service import CheckoutSettings


class TestAddToCart:
    """Tests for add_to_cart."""

    def test_add_new_line(self, session, employee, product):
        item = add_to_cart(session, employee.id, product.id, 'Blue', 2)
        session.commit()

        assert item.id is not None
        assert item.quantity == 2
        assert item.selected_color == 'Blue'

    def test_same_product_and_color_merges(self, session, employee, product):
        first = add_to_cart(session, employee.id, product.id, 'Blue', 2)
        second = add_to_cart(session, employee.id, product.id, 'Blue', 3)
        session.commit()

        assert first.id == second.id
        assert second.quantity == 5
        assert session.query(CartItem).filter_by(employee_id=employee.id).count() == 1

    def test_different_color_is_separate_line(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 1)
        add_to_cart(session, employee.id, product.id, 'Black', 1)
        session.commit()

        assert session.query(CartItem).filter_by(employee_id=employee.id).count() == 2

    def test_no_color_lines_merge(self, session, employee):
        plain = Product(sku='SKU-PLAIN', name='Notebook', price=Decimal('20.00'), stock=10, colors=[], images=[])
        session.add(plain)
        session.commit()

        add_to_cart(session, employee.id, plain.id, None, 1)
        item = add_to_cart(session, employee.id, plain.id, '', 2)

        assert item.quantity == 3
        assert item.selected_color is None

    def test_unknown_product(self, session, employee):
        with pytest.raises(NotFoundError):
            add_to_cart(session, employee.id, 99999, None, 1)

    def test_inactive_product(self, session, employee, product):
        product.active = False
        session.commit()

        with pytest.raises(BusinessLogicError):
            add_to_cart(session, employee.id, product.id, 'Blue', 1)

    def test_unknown_color(self, session, employee, product):
        with pytest.raises(BusinessLogicError):
            add_to_cart(session, employee.id, product.id, 'Purple', 1)

    @pytest.mark.parametrize('quantity', [0, -1, 1.5, 'two', None, True])
    def test_invalid_quantity(self, session, employee, product, quantity):
        with pytest.raises(InvalidQuantityError):
            add_to_cart(session, employee.id, product.id, 'Blue', quantity)

    @pytest.mark.parametrize('product_id', [{'x': 1}, [1], 'abc', 1.5, True])
    def test_invalid_product_id(self, session, employee, product_id):
        with pytest.raises(BusinessLogicError) as exc_info:
            add_to_cart(session, employee.id, product_id, None, 1)
        assert exc_info.value.message == 'productId must be an integer'

    def test_numeric_string_product_id(self, session, employee, product):
        item = add_to_cart(session, employee.id, str(product.id), 'Blue', 1)
        assert item.product_id == product.id

    def test_over_stock(self, session, employee, product):
        with pytest.raises(OutOfStockError) as exc_info:
            add_to_cart(session, employee.id, product.id, 'Blue', 11)
        assert exc_info.value.payload == {'requested': 11, 'available': 10}

    def test_merge_over_stock(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 8)
        with pytest.raises(OutOfStockError):
            add_to_cart(session, employee.id, product.id, 'Blue', 3)


class TestSetQuantityAndRemove:
    """Tests for set_quantity, remove_item and clear_cart."""

    def test_set_quantity(self, session, employee, product):
        item = add_to_cart(session, employee.id, product.id, 'Blue', 1)
        updated = set_quantity(session, employee.id, item.id, 4)
        assert updated.quantity == 4

    def test_set_quantity_below_one(self, session, employee, product):
        item = add_to_cart(session, employee.id, product.id, 'Blue', 1)
        with pytest.raises(InvalidQuantityError):
            set_quantity(session, employee.id, item.id, 0)

    def test_set_quantity_over_stock(self, session, employee, product):
        item = add_to_cart(session, employee.id, product.id, 'Blue', 1)
        with pytest.raises(OutOfStockError):
            set_quantity(session, employee.id, item.id, 50)

    def test_set_quantity_missing_line(self, session, employee):
        with pytest.raises(NotFoundError):
            set_quantity(session, employee.id, 424242, 1)

    def test_other_employees_line_is_not_found(self, session, employee, product):
        item = add_to_cart(session, employee.id, product.id, 'Blue', 1)
        other = Employee(first_name='Ravi', last_name='K', email='ravi@example.com', points=0)
        session.add(other)
        session.commit()

        with pytest.raises(NotFoundError):
            set_quantity(session, other.id, item.id, 2)
        assert remove_item(session, other.id, item.id) is False

    def test_remove_item(self, session, employee, product):
        item = add_to_cart(session, employee.id, product.id, 'Blue', 1)
        assert remove_item(session, employee.id, item.id) is True
        assert remove_item(session, employee.id, item.id) is False

    def test_clear_cart(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 1)
        add_to_cart(session, employee.id, product.id, 'Black', 1)
        assert clear_cart(session, employee.id) == 2
        assert session.query(CartItem).filter_by(employee_id=employee.id).count() == 0


class TestCartWithProducts:
    """Tests for get_cart_with_products."""

    def test_line_prices_and_totals(self, session, employee, product):
        add_to_cart(session, employee.id, product.id, 'Blue', 2)
        session.commit()

        settings = CheckoutSettings(currency_per_point=Decimal('2.00'), max_selections=-1)
        cart = get_cart_with_products(session, employee.id, settings)

        assert len(cart['items']) == 1
        line = cart['items'][0]
        assert line['product']['name'] == 'Water Bottle'
        assert line['linePrice'] == '200.00'
        assert line['linePoints'] == 100
        assert cart['totalPrice'] == '200.00'
        assert cart['totalPoints'] == 100
