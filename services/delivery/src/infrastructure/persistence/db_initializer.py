# src/infrastructure/persistence/db_initializer.py
import logging
import os

import psycopg2
from .db_connector import get_connection, release_connection
from config import Config

logger = logging.getLogger(__name__)

# Rutas a los archivos SQL
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
RESOURCES_DIR = os.path.join(BASE_DIR, 'resources')
SCHEMA_FILE = os.path.join(RESOURCES_DIR, 'schema.sql')
INSERT_DATA_FILE = os.path.join(RESOURCES_DIR, 'insert_data.sql')


def _read_sql_file(filepath: str) -> str:
    """Lee el contenido de un archivo SQL."""
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError:
        logger.error(f"Archivo SQL no encontrado: {filepath}")
        return ""


def initialize_database():
    """
    Crea las tablas (y el trigger de notificación de cambios) y carga los
    datos iniciales si las tablas están vacías.
    """
    if not Config.RUN_DB_INIT_ON_STARTUP:
        logger.info("Inicialización de la base de datos omitida por configuración.")
        return

    schema_sql = _read_sql_file(SCHEMA_FILE)
    insert_data_sql = _read_sql_file(INSERT_DATA_FILE)

    if not schema_sql:
        logger.error("El script de esquema (schema.sql) está vacío o no se encontró. Abortando inicialización.")
        return

    conn = None
    try:
        conn = get_connection()
        cursor = conn.cursor()

        logger.info("Ejecutando scripts de creación de esquema...")
        cursor.execute(schema_sql)
        conn.commit()

        if insert_data_sql:
            logger.info("Ejecutando scripts de inserción de datos iniciales...")
            try:
                cursor.execute(insert_data_sql)
            except psycopg2.ProgrammingError as pe:
                logger.warning(f"Fallo al ejecutar el script de inserción (posiblemente datos ya existentes): {pe}")
                conn.rollback()
            else:
                conn.commit()

    except psycopg2.Error as e:
        logger.error(f"Fallo durante la inicialización de la base de datos (Esquema o Conexión): {e}")
        if conn:
            conn.rollback()
    except ConnectionError as e:
        logger.error(f"{e}")
    finally:
        if conn:
            release_connection(conn)
