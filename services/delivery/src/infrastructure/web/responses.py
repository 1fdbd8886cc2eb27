# src/infrastructure/web/responses.py
from flask import current_app, jsonify

from src.application.errors import EntityNotFoundError, ProtectedEntityError, ValidationError


def error_response(error: Exception, action: str):
    """
    Traduce las excepciones de la capa de Aplicación a respuestas HTTP.
    Cualquier otra excepción se registra y se responde con 500.
    """
    if isinstance(error, ValidationError):
        return jsonify({"error": str(error)}), 400
    if isinstance(error, EntityNotFoundError):
        return jsonify({"error": str(error)}), 404
    if isinstance(error, ProtectedEntityError):
        return jsonify({"error": str(error)}), 409

    current_app.logger.error(f"Error al {action}: {error}")
    return jsonify({"message": f"Error interno del servicio de reparto al {action}."}), 500
