import pytest
import psycopg2
from unittest.mock import MagicMock, patch, sentinel

from src.infrastructure.persistence import db_connector


@pytest.fixture
def mock_config():
    """Mockea la clase Config con valores de conexión falsos."""
    with patch('src.infrastructure.persistence.db_connector.Config') as MockConfig:
        MockConfig.DB_HOST = "test_host"
        MockConfig.DB_PORT = 5432
        MockConfig.DB_NAME = "test_db"
        MockConfig.DB_USER = "test_user"
        MockConfig.DB_PASSWORD = "test_password"
        MockConfig.DB_POOL_MIN = 1
        MockConfig.DB_POOL_MAX = 4
        yield MockConfig


@pytest.fixture
def clean_db_pool():
    """Limpia el pool de la base de datos global antes y después de cada test."""
    original_db_pool = db_connector.db_pool
    db_connector.db_pool = None
    yield
    db_connector.db_pool = original_db_pool


# --- Tests para init_db_pool ---

@patch('src.infrastructure.persistence.db_connector.pool.SimpleConnectionPool')
def test_init_db_pool_success(MockSimpleConnectionPool, clean_db_pool, mock_config):
    """Prueba la inicialización exitosa del pool de conexiones."""
    mock_pool_instance = MockSimpleConnectionPool.return_value

    db_connector.init_db_pool()

    MockSimpleConnectionPool.assert_called_once_with(
        minconn=1,
        maxconn=4,
        host=mock_config.DB_HOST,
        port=mock_config.DB_PORT,
        database=mock_config.DB_NAME,
        user=mock_config.DB_USER,
        password=mock_config.DB_PASSWORD
    )
    assert db_connector.db_pool is mock_pool_instance


@patch('src.infrastructure.persistence.db_connector.logger')
@patch('src.infrastructure.persistence.db_connector.pool.SimpleConnectionPool',
       side_effect=psycopg2.Error("Conexión fallida"))
def test_init_db_pool_connection_error(MockSimpleConnectionPool, mock_logger, clean_db_pool, mock_config):
    """Prueba que se lance ConnectionError si falla la conexión inicial."""
    with pytest.raises(ConnectionError, match="Fallo en la conexión inicial a la base de datos."):
        db_connector.init_db_pool()

    mock_logger.error.assert_called_once()
    assert db_connector.db_pool is None


def test_init_db_pool_already_initialized(clean_db_pool):
    """Prueba que init_db_pool no se ejecute si ya está inicializado."""
    db_connector.db_pool = sentinel.ALREADY_INITIALIZED

    with patch('src.infrastructure.persistence.db_connector.pool.SimpleConnectionPool') as MockPool:
        db_connector.init_db_pool()

        MockPool.assert_not_called()
        assert db_connector.db_pool is sentinel.ALREADY_INITIALIZED


# --- Tests para get_connection / release_connection ---

def test_get_connection_success(clean_db_pool):
    mock_conn = MagicMock()
    mock_pool = MagicMock()
    mock_pool.getconn.return_value = mock_conn
    db_connector.db_pool = mock_pool

    conn = db_connector.get_connection()

    mock_pool.getconn.assert_called_once()
    assert conn is mock_conn


def test_get_connection_pool_not_initialized(clean_db_pool):
    with pytest.raises(ConnectionError, match="El pool de la base de datos no está inicializado."):
        db_connector.get_connection()


def test_release_connection_success(clean_db_pool):
    mock_conn_to_release = MagicMock()
    mock_pool = MagicMock()
    db_connector.db_pool = mock_pool

    db_connector.release_connection(mock_conn_to_release)

    mock_pool.putconn.assert_called_once_with(mock_conn_to_release)


def test_release_connection_pool_none(clean_db_pool):
    """Sin pool, release_connection no hace nada y no falla."""
    db_connector.release_connection(MagicMock())
    assert db_connector.db_pool is None


# --- Conexión dedicada para LISTEN ---

@patch('src.infrastructure.persistence.db_connector.psycopg2.connect')
def test_open_dedicated_connection_uses_autocommit(mock_connect, mock_config):
    conn = db_connector.open_dedicated_connection()

    mock_connect.assert_called_once_with(
        host="test_host", port=5432, database="test_db", user="test_user", password="test_password"
    )
    conn.set_isolation_level.assert_called_once_with(psycopg2.extensions.ISOLATION_LEVEL_AUTOCOMMIT)
