# config.py
import os


class Config:
    """Clase base de configuración, con variables de entorno para DB y despacho."""
    # Configuración de la Base de Datos (PostgreSQL)
    DB_HOST = os.environ.get('DB_HOST', 'host.docker.internal')
    DB_PORT = os.environ.get('DB_PORT', '5432')
    DB_NAME = os.environ.get('DB_NAME', 'delivery_db')
    DB_USER = os.environ.get('DB_USER', 'postgres')
    DB_PASSWORD = os.environ.get('DB_PASSWORD', 'postgres')
    DB_POOL_MIN = int(os.environ.get('DB_POOL_MIN', '1'))
    DB_POOL_MAX = int(os.environ.get('DB_POOL_MAX', '10'))
    # Parámetros para la inicialización de la BD
    RUN_DB_INIT_ON_STARTUP = os.environ.get('RUN_DB_INIT_ON_STARTUP', 'False').lower() == 'true'

    # 'memory' usa el almacén en memoria con datos iniciales, 'postgres' la BD
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'memory').lower()
    # Canal LISTEN/NOTIFY para cambios que llegan desde otros clientes
    ENABLE_CHANGE_LISTENER = os.environ.get('ENABLE_CHANGE_LISTENER', 'False').lower() == 'true'
    CHANGE_CHANNEL = os.environ.get('CHANGE_CHANNEL', 'entity_changes')

    # Reglas de negocio configurables
    DEFAULT_DISTRICT = os.environ.get('DEFAULT_DISTRICT', 'KARTAL')
    VOICE_ORDER_DEFAULT_PRICE = float(os.environ.get('VOICE_ORDER_DEFAULT_PRICE', '40'))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    PORT = int(os.environ.get('PORT', '8080'))
