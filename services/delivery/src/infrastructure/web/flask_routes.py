from flask import Blueprint, jsonify, request

from src.application.catalog_usecase import ManageCouriersUseCase
from src.application.errors import ValidationError
from src.application.intake_usecase import IngestExternalOrderUseCase
from src.application.notifications import NewOrderNotifier
from src.application.reporting_usecase import CourierStatsUseCase
from src.application.use_cases import (
    GetOrderUseCase,
    ListOrdersUseCase,
    PlaceOrderUseCase,
    RankCouriersUseCase,
    ReassignCourierUseCase,
    UpdateOrderStatusUseCase,
)
from .responses import error_response


def create_api_blueprint(
    place_case: PlaceOrderUseCase,
    status_case: UpdateOrderStatusUseCase,
    reassign_case: ReassignCourierUseCase,
    list_case: ListOrdersUseCase,
    get_order_case: GetOrderUseCase,
    intake_case: IngestExternalOrderUseCase,
    rank_case: RankCouriersUseCase,
    couriers_case: ManageCouriersUseCase,
    courier_stats_case: CourierStatsUseCase,
    notifier: NewOrderNotifier,
):
    """
    Función de fábrica para inyectar los Casos de Uso en el Blueprint de
    pedidos y repartidores. Crea un Blueprint nuevo en cada llamada para evitar
    conflictos en tests.
    """
    api_bp = Blueprint('api', __name__)

    # --- Pedidos ---

    @api_bp.route('/orders', methods=['GET'])
    def list_orders():
        try:
            limit = request.args.get('limit', default=50, type=int)
            orders = list_case.execute(
                status=request.args.get('status'),
                source=request.args.get('source'),
                limit=limit,
            )
            return jsonify({"orders": orders}), 200
        except Exception as e:
            return error_response(e, "listar los pedidos")

    @api_bp.route('/orders/<order_id>', methods=['GET'])
    def get_order(order_id):
        try:
            order = get_order_case.execute(order_id)
            if not order:
                return jsonify({"order": {}}), 404
            return jsonify({"order": order}), 200
        except Exception as e:
            return error_response(e, f"consultar el pedido {order_id}")

    @api_bp.route('/orders', methods=['POST'])
    def place_order():
        """Alta de pedido desde el formulario de oficina o la página del cliente."""
        try:
            created = place_case.execute(request.get_json(silent=True) or {})
            return jsonify({
                "order": created.to_dict(),
                "message": "Order created successfully"
            }), 201
        except Exception as e:
            return error_response(e, "crear el pedido")

    @api_bp.route('/orders/<order_id>/status', methods=['PUT'])
    def update_status(order_id):
        """Un pedido inexistente no es un error: se responde con order = null."""
        try:
            data = request.get_json(silent=True) or {}
            updated = status_case.execute(order_id, data.get("status"))
            return jsonify({"order": updated.to_dict() if updated else None}), 200
        except Exception as e:
            return error_response(e, f"actualizar el estado del pedido {order_id}")

    @api_bp.route('/orders/<order_id>/courier', methods=['PUT'])
    def reassign_courier(order_id):
        try:
            data = request.get_json(silent=True) or {}
            if "courierId" not in data:
                raise ValidationError("courierId es obligatorio (vacío para quitar el repartidor)")
            updated = reassign_case.execute(order_id, data.get("courierId"))
            return jsonify({"order": updated.to_dict() if updated else None}), 200
        except Exception as e:
            return error_response(e, f"reasignar el pedido {order_id}")

    @api_bp.route('/orders/webhook/voice', methods=['POST'])
    def voice_order_webhook():
        """Pedidos del robot telefónico / WhatsApp."""
        try:
            created = intake_case.execute(request.get_json(silent=True) or {})
            return jsonify({
                "success": True,
                "orderId": created.id,
                "message": "Sipariş başarıyla oluşturuldu",
                "order": created.to_dict(),
            }), 201
        except Exception as e:
            return error_response(e, "registrar el pedido externo")

    @api_bp.route('/notifications', methods=['GET'])
    def recent_notifications():
        return jsonify({"notifications": notifier.recent()}), 200

    # --- Repartidores ---

    @api_bp.route('/couriers', methods=['GET'])
    def list_couriers():
        try:
            return jsonify({"couriers": couriers_case.list()}), 200
        except Exception as e:
            return error_response(e, "listar los repartidores")

    @api_bp.route('/couriers', methods=['POST'])
    def create_courier():
        try:
            courier = couriers_case.create(request.get_json(silent=True) or {})
            return jsonify({"courier": courier.to_dict()}), 201
        except Exception as e:
            return error_response(e, "crear el repartidor")

    @api_bp.route('/couriers/ranking', methods=['GET'])
    def courier_ranking():
        """Sugerencia de repartidor: menor puntaje primero."""
        try:
            ranking = rank_case.execute(request.args.get('neighborhood', ''))
            return jsonify({"ranking": ranking}), 200
        except Exception as e:
            return error_response(e, "calcular el ranking de repartidores")

    @api_bp.route('/couriers/stats', methods=['GET'])
    def courier_stats():
        try:
            return jsonify({"couriers": courier_stats_case.execute()}), 200
        except Exception as e:
            return error_response(e, "calcular las estadísticas de repartidores")

    @api_bp.route('/couriers/<courier_id>', methods=['PUT'])
    def update_courier(courier_id):
        try:
            courier = couriers_case.update(courier_id, request.get_json(silent=True) or {})
            return jsonify({"courier": courier.to_dict()}), 200
        except Exception as e:
            return error_response(e, f"actualizar el repartidor {courier_id}")

    @api_bp.route('/couriers/<courier_id>/inventory', methods=['PUT'])
    def report_courier_inventory(courier_id):
        try:
            data = request.get_json(silent=True) or {}
            courier = couriers_case.report_inventory(
                courier_id, data.get("fullInventory", 0), data.get("emptyInventory", 0)
            )
            return jsonify({"courier": courier.to_dict()}), 200
        except Exception as e:
            return error_response(e, f"actualizar el stock del repartidor {courier_id}")

    return api_bp
