"""
Centralised environment settings using Pydantic settings.

This module defines a ``Settings`` class which encapsulates the values
the harness reads from the environment. Variables can be exported
before running pytest or placed in a ``.env`` file at the project root.
The defaults baked into the web and auth configurations are built from
these values, so they are read once per configuration load.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Harness configuration loaded from environment variables.

    ``E2E_BASE_URL``: application under test; relative ``goto`` targets
    are joined against it.
    ``E2E_PROTECTED_PATH``: path (regular expression) the happy-path
    login is expected to land on.
    ``E2E_USER_EMAIL`` / ``E2E_USER_PASSWORD``: valid credentials.
    ``E2E_CONFIG_DIR``: directory holding ``web.config.json`` and
    ``auth.config.json``. Empty means the current working directory.
    ``ARTIFACT_ROOT``: where failure screenshots and step logs go when a
    run directory is requested.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    E2E_BASE_URL: str = "http://localhost:3000"
    E2E_PROTECTED_PATH: str = "/dashboard"
    E2E_USER_EMAIL: str = "qa@example.com"
    E2E_USER_PASSWORD: str = "Passw0rd!"

    E2E_CONFIG_DIR: str = ""
    ARTIFACT_ROOT: str = "./artifacts"

    PLAYWRIGHT_HEADLESS: bool = True
    E2E_LOG_LEVEL: str = "INFO"


def get_settings() -> Settings:
    """Build a fresh ``Settings`` so tests can patch the environment."""
    return Settings()
