from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Data backend: "rest" talks to the hosted REST gateway, "sql" connects directly
    data_backend: str = Field(default="rest", env="DATA_BACKEND")

    # Hosted backend-as-a-service
    backend_url: str = Field(default="http://localhost:54321", env="BACKEND_URL")
    backend_anon_key: str = Field(default="", env="BACKEND_ANON_KEY")
    http_timeout_seconds: float = Field(default=30.0, env="HTTP_TIMEOUT_SECONDS")

    # Direct SQL connection (only used when data_backend == "sql")
    database_url: str = Field(
        default="sqlite+aiosqlite:///./portal.db",
        env="DATABASE_URL",
    )
    seed_demo_accounts: bool = Field(default=False, env="SEED_DEMO_ACCOUNTS")

    # Local persistence
    local_store_path: str = Field(default="./.portal/local_storage.json", env="LOCAL_STORE_PATH")
    current_user_key: str = Field(default="portal-current-user", env="CURRENT_USER_KEY")
    auth_token_key: str = Field(default="portal-auth-token", env="AUTH_TOKEN_KEY")
    theme_key: str = Field(default="portal-theme", env="THEME_KEY")
    onboarding_key: str = Field(default="portal-onboarding-completed", env="ONBOARDING_KEY")
    profile_completed_key: str = Field(default="portal-profile-completed", env="PROFILE_COMPLETED_KEY")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
