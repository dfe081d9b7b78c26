"""
Módulo de acceso a la base de datos.

- ConnDB: Gestión exclusiva de conexiones
- repositories: Operaciones de negocio sobre las tablas existentes
"""

from app.db.connection import (
    ConnDB,
    close_database,
    get_db_connection,
    initialize_database,
)

__all__ = [
    "ConnDB",
    "get_db_connection",
    "initialize_database",
    "close_database",
]
