from flask import jsonify, request, Blueprint
from sqlalchemy import or_

from wedding import db
from wedding.models import Category, Product

bp = Blueprint('catalog', __name__)


@bp.route('/products', methods=['GET'])
def get_products():
    query = Product.query.filter(Product.is_available.is_(True))

    category_id = request.args.get('category', type=int)
    if category_id:
        query = query.filter(Product.category_id == category_id)

    search = request.args.get('search')
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

    products = query.order_by(Product.name).all()
    return jsonify([product.to_dict() for product in products]), 200


@bp.route('/products/<int:product_id>', methods=['GET'])
def get_product(product_id):
    product = db.get_or_404(Product, product_id, description="Product not found")
    return jsonify(product.to_dict()), 200


@bp.route('/categories', methods=['GET'])
def get_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify([category.to_dict() for category in categories]), 200
