# Platform Integrations Database
from .connection import SessionLocal, check_db_connection, engine, get_db_session, init_db
from .credential_store import CredentialStore
from .models import Base, Connection

__all__ = [
    "Base",
    "Connection",
    "CredentialStore",
    "SessionLocal",
    "check_db_connection",
    "engine",
    "get_db_session",
    "init_db",
]
