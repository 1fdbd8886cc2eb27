# src/application/errors.py


class ValidationError(ValueError):
    """Datos de entrada incompletos o con valores fuera del dominio."""
    pass


class EntityNotFoundError(LookupError):
    """La entidad a editar no existe (pantallas de gestión, no el ciclo de vida)."""
    pass


class ProtectedEntityError(Exception):
    """Borrado no permitido: ítem 'core' de inventario o categoría en uso."""
    pass
