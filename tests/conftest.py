# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""
Pytest configuration and fixtures for all tests.

This file ensures the project root is in the Python path
so that imports work correctly for all test modules, and points the
service at an in-memory database before any service module is imported.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

os.environ.setdefault("PLATFORM_INTEGRATIONS_DATABASE_URL", "sqlite://")
os.environ.setdefault("PLATFORM_INTEGRATIONS_JWT_SECRET_KEY", "test-secret-key")

# Import pytest for fixtures
import pytest
from cryptography.fernet import Fernet
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from platform_integrations.config import Settings
from platform_integrations.database.models import Base
from platform_integrations.utils.encryption import ConfigCipher


@pytest.fixture
def project_root_path():
    """Return the project root path."""
    return project_root


@pytest.fixture
def test_settings():
    """Settings with fast failure: no retries, no backoff."""
    return Settings(
        request_timeout=5.0,
        upstream_max_retries=0,
        upstream_retry_delay=0.0,
        jira_page_size=100,
        jira_max_issues=1000,
        monday_page_size=100,
        monday_max_items=500,
        max_projects_per_fetch=10,
    )


@pytest.fixture
def fernet_key():
    return Fernet.generate_key().decode()


@pytest.fixture
def cipher(fernet_key):
    return ConfigCipher(fernet_key)


@pytest.fixture
def db_session():
    """In-memory SQLite session shared across threads (TestClient runs the app in one)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def jira_config():
    return {
        "domain": "acme",
        "email": "pm@acme.com",
        "apiToken": "jira-token-1234",
        "projectKey": "PROJ",
    }


@pytest.fixture
def monday_config():
    return {"apiKey": "monday-key-5678", "boardId": "42"}


@pytest.fixture
def trofos_config():
    return {
        "serverUrl": "https://trofos.example.edu/api/external",
        "apiKey": "trofos-key-9012",
        "projectId": "7",
    }
