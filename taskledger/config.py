"""Configuration for the TaskLedger service.

Uses taskledger.core.Config for environment variable override support.
Environment variables use the TASKLEDGER__ prefix (e.g., TASKLEDGER__URL=http://0.0.0.0:3333).
"""

from typing import Optional

from pydantic import BaseModel, SecretStr

from taskledger.core import Config, SettingsLike


class TaskLedgerSettings(BaseModel):
    """TaskLedger service configuration settings."""

    # Service URL (host and port the HTTP server binds to)
    URL: str = "http://localhost:3333"

    # MongoDB connection
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "taskledger"
    MONGO_TIMEOUT_MS: int = 5000

    # Auth / JWT
    # No default signing key; the service refuses to start until one is configured
    JWT_SECRET: SecretStr = SecretStr("")
    JWT_KEY_ID: str = "default"
    # Verification-only keys, formatted "kid:secret,kid:secret"
    JWT_RETIRED_KEYS: SecretStr = SecretStr("")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_IN: int = 24 * 60 * 60  # seconds

    # Password hashing
    BCRYPT_ROUNDS: int = 10
    HASH_TIMEOUT_SECONDS: float = 5.0

    # Task listing
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # When False, GET / and GET /{id} require a bearer token
    USER_DIRECTORY_PUBLIC: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "~/.cache/taskledger/logs"
    USE_STRUCTLOG: bool = True


class TaskLedgerConfig(BaseModel):
    """Top-level config model; one section per component."""

    TASKLEDGER: TaskLedgerSettings = TaskLedgerSettings()


# Module-level config cache
_config: Optional[Config] = None


def load_taskledger_config(overrides: SettingsLike = None) -> Config:
    """Build a fresh TaskLedger Config: defaults, then TASKLEDGER__* env vars, then ``overrides``."""
    return Config.load(defaults=TaskLedgerConfig(), overrides=overrides)


def get_taskledger_config() -> Config:
    """Get the TaskLedger configuration singleton.

    Configuration is loaded once and cached. Supports environment variable overrides using the TASKLEDGER__ prefix.

    Examples:
        ```bash
        export TASKLEDGER__URL=http://0.0.0.0:3333
        export TASKLEDGER__JWT_SECRET=change-me
        ```

        ```python
        config = get_taskledger_config()
        print(config.TASKLEDGER.URL)                       # http://0.0.0.0:3333
        config.get_secret("TASKLEDGER", "JWT_SECRET")      # change-me
        ```

    Returns:
        Config instance with a TASKLEDGER section containing all settings.
    """
    global _config
    if _config is None:
        _config = load_taskledger_config()
    return _config


def reset_taskledger_config() -> None:
    """Reset the config cache. Useful for testing."""
    global _config
    _config = None
