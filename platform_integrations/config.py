# Platform Integrations Configuration
"""
Configuration management for the Platform Integrations service.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Platform Integrations settings."""
    
    # Service settings
    service_name: str = "Platform Integrations Service"
    service_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False
    
    # Server settings
    host: str = "0.0.0.0"
    port: int = 8002
    cors_origins: list[str] = ["*"]
    
    # Database settings
    database_url: str = "sqlite:///./platform_integrations.db"
    
    # Security settings
    encryption_key: str = ""  # Fernet key, generate with Fernet.generate_key()
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    
    # Upstream request settings
    request_timeout: float = 30.0  # seconds
    upstream_max_retries: int = 2
    upstream_retry_delay: float = 0.5  # seconds, doubled per attempt
    max_projects_per_fetch: int = 10
    
    # Jira
    jira_page_size: int = 100
    jira_max_issues: int = 1000
    
    # Monday.com
    monday_api_url: str = "https://api.monday.com/v2"
    monday_api_version: str = "2024-01"
    monday_page_size: int = 100
    monday_max_items: int = 500
    
    # TROFOS
    trofos_page_size: int = 100
    
    class Config:
        env_prefix = "PLATFORM_INTEGRATIONS_"
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
