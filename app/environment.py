from enum import Enum


class EnvironmentName(Enum):
    TESTING = "test"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def serves_docs(self) -> bool:
        """Interactive API docs are only served outside production."""
        return self is not EnvironmentName.PRODUCTION
