import pytest
from unittest.mock import MagicMock, patch, mock_open
import psycopg2

from src.infrastructure.persistence import db_initializer
from src.infrastructure.persistence.db_initializer import initialize_database, _read_sql_file


# --- Mocks Comunes (Fixtures) ---

@pytest.fixture
def mock_db_connection():
    """Mockea la conexión y el cursor de psycopg2."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn


@pytest.fixture(autouse=True)
def mock_db_connector(mock_db_connection):
    """Mockea get_connection y release_connection a nivel de módulo."""
    with patch('src.infrastructure.persistence.db_initializer.get_connection',
               return_value=mock_db_connection) as get_conn_mock, \
            patch('src.infrastructure.persistence.db_initializer.release_connection') as release_conn_mock:
        yield get_conn_mock, release_conn_mock


@pytest.fixture
def mock_config():
    """Mockea la clase Config para controlar RUN_DB_INIT_ON_STARTUP."""
    with patch('src.infrastructure.persistence.db_initializer.Config') as MockConfig:
        MockConfig.RUN_DB_INIT_ON_STARTUP = True
        yield MockConfig


# --- Tests de la Función Auxiliar (_read_sql_file) ---

def test_read_sql_file_success():
    mock_data = "CREATE TABLE delivery.orders;"
    with patch('builtins.open', mock_open(read_data=mock_data)):
        assert _read_sql_file("dummy_path.sql") == mock_data


def test_read_sql_file_not_found():
    with patch('builtins.open', side_effect=FileNotFoundError), \
            patch('src.infrastructure.persistence.db_initializer.logger') as mock_logger:
        assert _read_sql_file("non_existent.sql") == ""
        mock_logger.error.assert_called_once()


def test_resource_files_exist():
    """Los scripts que usa el inicializador se distribuyen con el servicio."""
    assert "pg_notify" in _read_sql_file(db_initializer.SCHEMA_FILE)
    assert "core-full" in _read_sql_file(db_initializer.INSERT_DATA_FILE)


# --- Tests de initialize_database() ---

def test_initialization_skipped(mock_config, mock_db_connector):
    mock_config.RUN_DB_INIT_ON_STARTUP = False

    initialize_database()

    mock_db_connector[0].assert_not_called()


@patch('src.infrastructure.persistence.db_initializer._read_sql_file', side_effect=["", "INSERT INTO data;"])
def test_initialization_schema_missing(mock_read_sql, mock_config, mock_db_connector):
    initialize_database()

    assert mock_read_sql.call_count == 2
    mock_db_connector[0].assert_not_called()


@patch('src.infrastructure.persistence.db_initializer._read_sql_file',
       side_effect=["CREATE TABLE;", "INSERT INTO data;"])
def test_initialization_success(mock_read_sql, mock_db_connector, mock_db_connection, mock_config):
    """Prueba el flujo completo de inicialización exitosa."""
    get_conn_mock, release_conn_mock = mock_db_connector
    mock_cursor = mock_db_connection.cursor.return_value

    initialize_database()

    get_conn_mock.assert_called_once()
    mock_cursor.execute.assert_any_call("CREATE TABLE;")
    mock_cursor.execute.assert_any_call("INSERT INTO data;")
    assert mock_db_connection.commit.call_count == 2
    release_conn_mock.assert_called_once_with(mock_db_connection)


@patch('src.infrastructure.persistence.db_initializer._read_sql_file',
       side_effect=["CREATE TABLE;", "INSERT INTO data;"])
def test_initialization_data_error_handled(mock_read_sql, mock_db_connector, mock_db_connection, mock_config):
    """Un fallo en los datos iniciales se revierte sin perder el esquema."""
    _, release_conn_mock = mock_db_connector
    mock_cursor = mock_db_connection.cursor.return_value
    mock_cursor.execute.side_effect = [None, psycopg2.ProgrammingError("duplicate key")]

    initialize_database()

    assert mock_db_connection.commit.call_count == 1
    mock_db_connection.rollback.assert_called_once()
    release_conn_mock.assert_called_once_with(mock_db_connection)


@patch('src.infrastructure.persistence.db_initializer._read_sql_file',
       side_effect=["CREATE TABLE;", ""])
def test_initialization_schema_error(mock_read_sql, mock_db_connector, mock_db_connection, mock_config):
    mock_db_connection.cursor.return_value.execute.side_effect = psycopg2.Error("syntax error")

    initialize_database()

    mock_db_connection.rollback.assert_called_once()
    mock_db_connector[1].assert_called_once_with(mock_db_connection)


def test_initialization_without_pool(mock_config, mock_db_connector):
    mock_db_connector[0].side_effect = ConnectionError("El pool de la base de datos no está inicializado.")

    with patch('src.infrastructure.persistence.db_initializer._read_sql_file', return_value="CREATE TABLE;"):
        initialize_database()

    mock_db_connector[1].assert_not_called()
