from flask import Blueprint, jsonify, request

from src.application.catalog_usecase import ManageCustomersUseCase, ManageStockUseCase
from src.application.reporting_usecase import DashboardStatsUseCase
from .responses import error_response


def create_admin_blueprint(
    dashboard_case: DashboardStatsUseCase,
    customers_case: ManageCustomersUseCase,
    stock_case: ManageStockUseCase,
):
    """
    Función de fábrica del Blueprint del panel de administración:
    métricas, clientes, inventario y categorías.
    """
    admin_bp = Blueprint('admin', __name__)

    @admin_bp.route('/admin/dashboard', methods=['GET'])
    def dashboard():
        """
        Métricas para una ventana de tiempo.
        ?filter=today|week|month|custom|all (&start=YYYY-MM-DD&end=YYYY-MM-DD para 'custom').
        """
        try:
            stats = dashboard_case.execute(
                time_filter=request.args.get('filter'),
                start=request.args.get('start'),
                end=request.args.get('end'),
            )
            return jsonify(stats), 200
        except Exception as e:
            return error_response(e, "calcular las métricas del panel")

    # --- Clientes ---

    @admin_bp.route('/admin/customers', methods=['GET'])
    def list_customers():
        try:
            customers = customers_case.list(request.args.get('search'))
            return jsonify({"customers": customers}), 200
        except Exception as e:
            return error_response(e, "listar los clientes")

    @admin_bp.route('/admin/customers/<customer_id>/orders', methods=['GET'])
    def customer_history(customer_id):
        try:
            return jsonify(customers_case.history(customer_id)), 200
        except Exception as e:
            return error_response(e, f"consultar el historial del cliente {customer_id}")

    @admin_bp.route('/admin/customers/import', methods=['POST'])
    def import_customers():
        """Acepta {"text": "..."} o el texto plano en el cuerpo."""
        try:
            data = request.get_json(silent=True)
            text = data.get("text", "") if isinstance(data, dict) else request.get_data(as_text=True)
            imported = customers_case.import_text(text)
            return jsonify({
                "imported": len(imported),
                "customers": [c.to_dict() for c in imported]
            }), 201
        except Exception as e:
            return error_response(e, "importar los clientes")

    # --- Inventario ---

    @admin_bp.route('/admin/inventory', methods=['GET'])
    def list_inventory():
        try:
            items = stock_case.list_inventory(
                category=request.args.get('category'),
                search=request.args.get('search'),
            )
            return jsonify({"inventory": items}), 200
        except Exception as e:
            return error_response(e, "listar el inventario")

    @admin_bp.route('/admin/inventory', methods=['POST'])
    def create_inventory_item():
        try:
            item = stock_case.create_item(request.get_json(silent=True) or {})
            return jsonify({"item": item.to_dict()}), 201
        except Exception as e:
            return error_response(e, "crear el producto")

    @admin_bp.route('/admin/inventory/<item_id>', methods=['PUT'])
    def update_inventory_item(item_id):
        try:
            item = stock_case.update_item(item_id, request.get_json(silent=True) or {})
            return jsonify({"item": item.to_dict()}), 200
        except Exception as e:
            return error_response(e, f"actualizar el producto {item_id}")

    @admin_bp.route('/admin/inventory/<item_id>', methods=['DELETE'])
    def delete_inventory_item(item_id):
        try:
            stock_case.delete_item(item_id)
            return jsonify({"deleted": item_id}), 200
        except Exception as e:
            return error_response(e, f"eliminar el producto {item_id}")

    # --- Categorías ---

    @admin_bp.route('/admin/categories', methods=['GET'])
    def list_categories():
        try:
            return jsonify({"categories": stock_case.list_categories()}), 200
        except Exception as e:
            return error_response(e, "listar las categorías")

    @admin_bp.route('/admin/categories', methods=['POST'])
    def create_category():
        try:
            category = stock_case.create_category(request.get_json(silent=True) or {})
            return jsonify({"category": category.to_dict()}), 201
        except Exception as e:
            return error_response(e, "crear la categoría")

    @admin_bp.route('/admin/categories/<category_id>', methods=['PUT'])
    def update_category(category_id):
        try:
            category = stock_case.update_category(category_id, request.get_json(silent=True) or {})
            return jsonify({"category": category.to_dict()}), 200
        except Exception as e:
            return error_response(e, f"actualizar la categoría {category_id}")

    @admin_bp.route('/admin/categories/<category_id>', methods=['DELETE'])
    def delete_category(category_id):
        try:
            stock_case.delete_category(category_id)
            return jsonify({"deleted": category_id}), 200
        except Exception as e:
            return error_response(e, f"eliminar la categoría {category_id}")

    return admin_bp
