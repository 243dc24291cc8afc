"""Catalog blueprint - products and portal settings visible to employees."""
from flask import Blueprint, jsonify
from perks.database import get_session
from perks.middleware import require_employee
from perks.services.catalog_service import list_visible_products, list_csr_products, get_product
from perks.services.settings_service import get_checkout_settings

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


@catalog_bp.route('/products', methods=['GET'])
@require_employee
def products_list():
    """Active products, out-of-stock ones swapped for their backup."""
    return jsonify(list_visible_products(get_session()))


@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
@require_employee
def product_detail(product_id):
    return jsonify(get_product(get_session(), product_id).to_dict())


@catalog_bp.route('/csr-products', methods=['GET'])
@require_employee
def csr_products_list():
    return jsonify(list_csr_products(get_session()))


@catalog_bp.route('/branding', methods=['GET'])
def branding():
    """Exchange rate and selection limit the cart page shows."""
    return jsonify(get_checkout_settings(get_session()).to_dict())
