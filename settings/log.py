import logging

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

LEVELS = {
    "fatal": logging.FATAL,
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "notset": logging.NOTSET,
}


class LoggingSettings(BaseSettings):
    use_config: bool = Field(alias="LOGGING_USE_CONFIG", default=True)
    use_pretty_json: bool = Field(alias="LOGGING_USE_PRETTY_JSON", default=True)
    level: int = Field(alias="LOGGING_LEVEL", default=logging.INFO)
    access_log: bool = Field(alias="LOGGING_ACCESS_LOG", default=True)

    @field_validator("level", mode="before")
    def set_logging_level(cls, level: str | int | None, info: ValidationInfo) -> int:
        if isinstance(level, int):
            return level
        name = (level or "").strip().lower()
        if name not in LEVELS:
            logging.getLogger(__name__).warning(f"Invalid logging level: {level}, using INFO")
            return logging.INFO
        return LEVELS[name]
