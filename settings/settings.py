import logging

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from app.environment import EnvironmentName
from settings.log import LoggingSettings


class DatabaseSettings(BaseSettings):
    url: str = Field(alias="DATABASE_URL", default="sqlite+aiosqlite:///./data/outlook_helper.db")
    echo: bool = Field(alias="DATABASE_ECHO", default=False)
    auto_create: bool = Field(alias="DATABASE_AUTO_CREATE", default=True)

    @property
    def sqlite_path(self) -> str | None:
        """Return the filesystem path of a SQLite database, or None for other backends."""
        if not self.url.startswith("sqlite"):
            return None
        _, _, path = self.url.partition(":///")
        return path or None


class AuthSettings(BaseSettings):
    token: str = Field(alias="AUTH_TOKEN")
    jwt_secret: str = Field(alias="JWT_SECRET", default="default-secret-change-this")
    jwt_expire_hours: int = Field(alias="JWT_EXPIRE_HOURS", default=6)
    jwt_issuer: str = Field(alias="JWT_ISSUER", default="outlook-helper")
    operator_username: str = Field(alias="OPERATOR_USERNAME", default="admin")


class GatewaySettings(BaseSettings):
    base_url: str = Field(alias="OUTLOOK_API_BASE_URL")
    timeout: int = Field(alias="OUTLOOK_API_TIMEOUT", default=30)
    skip_validation: bool = Field(alias="SKIP_EMAIL_VALIDATION", default=False)
    validation_workers: int = Field(alias="EMAIL_VALIDATION_WORKERS", default=5)

    @field_validator("base_url", mode="after")
    def strip_trailing_slash(cls, value: str, info: ValidationInfo) -> str:
        return value.rstrip("/")

    @field_validator("validation_workers", mode="after")
    def at_least_one_worker(cls, value: int, info: ValidationInfo) -> int:
        if value < 1:
            logging.getLogger(__name__).warning(f"Invalid validation worker count: {value}, using 1")
            return 1
        return value


class ServerSettings(BaseSettings):
    app_name: str = Field(alias="APP_NAME", default="Outlook Helper")
    cors_allowed_origins: str = Field(alias="CORS_ALLOWED_ORIGINS", default="")
    static_dir: str = Field(alias="STATIC_DIR", default="./static")

    @property
    def cors_origins(self) -> list[str]:
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]
        return origins or ["*"]


class SentrySettings(BaseSettings):
    dsn: str | None = Field(alias="SENTRY_DSN", default=None)
    traces_sample_rate: float = Field(alias="SENTRY_TRACES_SAMPLE_RATE", default=0.0)

    @property
    def is_enabled(self) -> bool:
        return bool(self.dsn)


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "allow"}

    environment: EnvironmentName = Field(alias="ENVIRONMENT", default=EnvironmentName.DEVELOPMENT)
    password_encryption_key: str = Field(alias="PASSWORD_ENCRYPTION_KEY")

    auth: AuthSettings = Field(default_factory=AuthSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sentry: SentrySettings = Field(default_factory=SentrySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @field_validator("environment", mode="before")
    def set_environment(cls, level: str, info: ValidationInfo) -> EnvironmentName:
        try:
            return EnvironmentName(level)
        except ValueError:
            logging.getLogger(__name__).warning(f"Invalid environment: {level}")
            return EnvironmentName.DEVELOPMENT
