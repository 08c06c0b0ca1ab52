"""Configuration settings for the session controller."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Session controller configuration with environment variable support."""

    # Service
    SERVICE_NAME: str = "session-controller"
    SERVICE_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOGGING_HOST: str = ""  # Ship logs to the central logging service when set
    LOGGING_PORT: int = 9999
    NOISY_LOGGERS: str = "botocore,boto3,aioboto3,aiobotocore,urllib3,httpx,httpcore"

    # Identity backend (auth-service)
    AUTH_SERVICE_URL: str = "http://auth-service:8002"
    AUTH_PROVIDER: str = "password"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # DynamoDB data store
    DYNAMODB_ENDPOINT: str = "http://dynamodb-local:8000"
    DYNAMODB_REGION: str = "us-east-1"
    DYNAMODB_ACCESS_KEY: str = "test"
    DYNAMODB_SECRET_KEY: str = "test"
    USERS_TABLE_NAME: str = "users"
    USER_ROLES_TABLE_NAME: str = "user_roles"
    DAILY_LIMITS_TABLE_NAME: str = "user_daily_limits"
    DAILY_USAGE_TABLE_NAME: str = "user_daily_usage"
    RESOURCE_OWNERSHIP_TABLE_NAME: str = "resource_ownership"

    # Session lifecycle
    INIT_TIMEOUT_SECONDS: float = 15.0
    USER_REFRESH_INTERVAL_SECONDS: float = 5 * 60  # 0 disables periodic refresh

    # Profile resolution
    PROFILE_MAX_ATTEMPTS: int = 3
    PROFILE_RETRY_DELAY_SECONDS: float = 1.0  # Covers RLS lag right after sign-in
    QUERY_TIMEOUT_SECONDS: float = 5.0
    ROLE_DEFAULT_LIMITS_ENABLED: bool = False

    # Daily usage quotas
    USAGE_WARNING_THRESHOLD: float = 0.8
    DEDUPLICATE_USAGE_WARNINGS: bool = False

    # Inactivity expiry
    INACTIVITY_TIMEOUT_SECONDS: float = 8 * 60 * 60
    WARNING_BEFORE_LOGOUT_SECONDS: float = 5 * 60
    INACTIVITY_CHECK_INTERVAL_SECONDS: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
