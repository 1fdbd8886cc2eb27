# app.py
import logging

from flask import Flask, jsonify
from dotenv import load_dotenv  # Necesario para cargar variables de entorno
from flask_cors import CORS

# Cargar variables de entorno del archivo .env (si existe) antes de leer Config
load_dotenv()

from config import Config
from src.application.catalog_usecase import ManageCouriersUseCase, ManageCustomersUseCase, ManageStockUseCase
from src.application.intake_usecase import IngestExternalOrderUseCase
from src.application.notifications import NewOrderNotifier
from src.application.reporting_usecase import CourierStatsUseCase, DashboardStatsUseCase
from src.application.store import EntityStore
from src.application.use_cases import (
    GetOrderUseCase,
    ListOrdersUseCase,
    PlaceOrderUseCase,
    RankCouriersUseCase,
    ReassignCourierUseCase,
    UpdateOrderStatusUseCase,
)
from src.domain.interfaces import PersistenceGateway
from src.infrastructure.persistence.memory_gateway import InMemoryPersistenceGateway
from src.infrastructure.web.flask_admin_routes import create_admin_blueprint
from src.infrastructure.web.flask_routes import create_api_blueprint

logger = logging.getLogger(__name__)


def _build_gateway() -> PersistenceGateway:
    """Elige la implementación de persistencia según STORAGE_BACKEND."""
    if Config.STORAGE_BACKEND != 'postgres':
        logger.info("Usando almacenamiento en memoria con datos iniciales.")
        return InMemoryPersistenceGateway()

    from src.infrastructure.persistence.db_connector import init_db_pool
    from src.infrastructure.persistence.db_initializer import initialize_database
    from src.infrastructure.persistence.pg_gateway import PgPersistenceGateway

    # --- INICIALIZACIÓN DE LA BASE DE DATOS ---
    # Sin pool no hay servicio: el error se propaga y el proceso no arranca.
    init_db_pool()
    initialize_database()
    return PgPersistenceGateway()


def _start_change_listener(store: EntityStore, gateway: PersistenceGateway) -> None:
    from src.infrastructure.persistence.change_listener import PgChangeListener

    listener = PgChangeListener(store, Config.CHANGE_CHANNEL, gateway=gateway)
    listener.start()


def create_app(gateway: PersistenceGateway = None):
    """Crea, configura y cablea la aplicación Flask siguiendo la Arquitectura Limpia."""

    app = Flask(__name__)
    app.config.from_object(Config)

    # --- CABLEADO DE DEPENDENCIAS (Dependency Injection - DI) ---

    # 1. Infraestructura de Persistencia
    if gateway is None:
        gateway = _build_gateway()

    # 2. Almacén compartido y suscriptores
    store = EntityStore.load(gateway)
    notifier = NewOrderNotifier()
    store.subscribe(notifier)
    if Config.STORAGE_BACKEND == 'postgres' and Config.ENABLE_CHANGE_LISTENER:
        _start_change_listener(store, gateway)

    # 3. Capa de Aplicación (Use Cases)
    couriers_case = ManageCouriersUseCase(store)
    api_bp = create_api_blueprint(
        place_case=PlaceOrderUseCase(store, default_district=Config.DEFAULT_DISTRICT),
        status_case=UpdateOrderStatusUseCase(store),
        reassign_case=ReassignCourierUseCase(store),
        list_case=ListOrdersUseCase(store),
        get_order_case=GetOrderUseCase(store),
        intake_case=IngestExternalOrderUseCase(store, default_price=Config.VOICE_ORDER_DEFAULT_PRICE),
        rank_case=RankCouriersUseCase(store),
        couriers_case=couriers_case,
        courier_stats_case=CourierStatsUseCase(store),
        notifier=notifier,
    )
    admin_bp = create_admin_blueprint(
        dashboard_case=DashboardStatsUseCase(store),
        customers_case=ManageCustomersUseCase(store),
        stock_case=ManageStockUseCase(store),
    )

    # Configurar CORS
    CORS(app, resources={
        r"/*": {
            "origins": "*",
            "send_wildcard": True,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"]
        }
    })

    # 4. Capa de Presentación (Web)
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)
    app.extensions['entity_store'] = store

    # --- Ruta de control ---
    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok'})
    return app


if __name__ == '__main__':
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    app = create_app()
    app.run(host='0.0.0.0', port=Config.PORT, debug=False)
