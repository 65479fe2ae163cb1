import os
from typing import TYPE_CHECKING, cast

from pydantic_settings import BaseSettings

SETTINGS_ENV_VAR = "OUTLOOK_HELPER_ENV"


def get_settings(profile: str | None = None) -> BaseSettings:
    """Load settings for ``profile``, read from OUTLOOK_HELPER_ENV when not given; "test" selects TestSettings."""
    if (profile or os.getenv(SETTINGS_ENV_VAR)) == "test":
        from .test_settings import TestSettings

        return TestSettings()

    from .settings import Settings

    return Settings()


if TYPE_CHECKING:
    from .settings import Settings

    settings = cast(Settings, get_settings())
else:
    settings = get_settings()
