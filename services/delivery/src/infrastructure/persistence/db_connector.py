# src/infrastructure/persistence/db_connector.py
import logging

import psycopg2
from psycopg2 import extensions, pool
from config import Config

logger = logging.getLogger(__name__)

# Pool compartido por los gateways; la escucha de cambios usa su propia conexión
db_pool = None


def _connection_params():
    return {
        "host": Config.DB_HOST,
        "port": Config.DB_PORT,
        "database": Config.DB_NAME,
        "user": Config.DB_USER,
        "password": Config.DB_PASSWORD,
    }


def init_db_pool():
    """Crea el pool de conexiones la primera vez; las llamadas siguientes no hacen nada."""
    global db_pool
    if db_pool is not None:
        return
    try:
        db_pool = pool.SimpleConnectionPool(
            minconn=Config.DB_POOL_MIN,
            maxconn=Config.DB_POOL_MAX,
            **_connection_params()
        )
    except psycopg2.Error as e:
        logger.error("No se pudo abrir el pool hacia %s/%s: %s", Config.DB_HOST, Config.DB_NAME, e)
        raise ConnectionError("Fallo en la conexión inicial a la base de datos.")
    logger.info("Pool de conexiones listo (%s-%s).", Config.DB_POOL_MIN, Config.DB_POOL_MAX)


def get_connection():
    if db_pool is None:
        raise ConnectionError("El pool de la base de datos no está inicializado.")
    return db_pool.getconn()


def release_connection(conn):
    if db_pool:
        db_pool.putconn(conn)


def open_dedicated_connection():
    """
    Conexión fuera del pool, en modo autocommit, para escuchar LISTEN/NOTIFY
    durante toda la vida del proceso.
    """
    conn = psycopg2.connect(**_connection_params())
    conn.set_isolation_level(extensions.ISOLATION_LEVEL_AUTOCOMMIT)
    return conn
