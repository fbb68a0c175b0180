# Platform Integrations Dependencies
"""
FastAPI dependencies shared by the routers.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from platform_integrations.config import settings
from platform_integrations.database import get_db_session
from platform_integrations.handlers import ConnectionHandler
from platform_integrations.utils.encryption import ConfigCipher


@lru_cache()
def get_cipher() -> ConfigCipher:
    """Process-wide cipher built from the configured encryption key."""
    return ConfigCipher(settings.encryption_key)


def get_connection_handler(
    db: Session = Depends(get_db_session),
    cipher: ConfigCipher = Depends(get_cipher),
) -> ConnectionHandler:
    return ConnectionHandler(db, cipher, settings=settings)
