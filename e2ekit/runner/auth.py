"""
Login/logout flows driven by a selector map.

The defaults target ``data-cy`` hooks and can be overridden key by key
from ``auth.config.json`` in the working directory, for example::

    {
      "protectedPath": "/app",
      "loginRequestPattern": "api/session",
      "selectors": {"submit": "button[type=submit]"},
      "tokens": {"cookiePattern": "^sid$", "storageKeys": []}
    }

After a successful login the flow checks that the browser holds some
authentication artifact (a cookie whose name matches ``cookiePattern``
or one of ``storageKeys`` in local/session storage); after a rejected
login or a logout it checks that none are left.
"""

from __future__ import annotations

import re
import time
from typing import Annotated, Any, Dict, List, Optional, Sequence
from urllib.parse import urljoin

from loguru import logger
from playwright.sync_api import Page, Response, expect
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from e2ekit.core.config import Settings, get_settings
from e2ekit.core.merge import deep_merge, load_override_file
from e2ekit.core.patterns import describe, normalize_pattern
from e2ekit.runner.errors import ConfigError

AUTH_CONFIG_FILE = "auth.config.json"

LOGIN_URL = re.compile(r"login|sign", re.IGNORECASE)
DEFAULT_LOGIN_REQUEST_PATTERN = re.compile(r"login|api/(auth|login)", re.IGNORECASE)

PatternField = Annotated[Optional[Any], BeforeValidator(normalize_pattern)]

_STORAGE_PROBE = """keys => ({
  local: keys.filter(k => window.localStorage.getItem(k) !== null),
  session: keys.filter(k => window.sessionStorage.getItem(k) !== null),
})"""


class _AuthModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


class SelectorMap(_AuthModel):
    email: str
    password: str
    submit: str
    logout: Optional[str] = None
    error: Optional[str] = None
    user_indicator: Optional[str] = None


class Credentials(_AuthModel):
    email: str
    password: str


class CredentialSet(_AuthModel):
    valid: Credentials
    invalid: Optional[Credentials] = None


class Messages(_AuthModel):
    invalid: PatternField = None
    locked: PatternField = None


class TokenExpectations(_AuthModel):
    cookie_pattern: PatternField = None
    storage_keys: List[str] = Field(default_factory=list)


class AuthConfig(_AuthModel):
    base_url: Optional[str] = None
    login_path: Optional[str] = "/login"
    protected_path: str
    login_request_pattern: PatternField = None
    selectors: SelectorMap
    credentials: CredentialSet
    messages: Messages = Field(default_factory=Messages)
    tokens: Optional[TokenExpectations] = None


def default_auth_config(settings: Settings) -> Dict[str, Any]:
    return {
        "baseUrl": settings.E2E_BASE_URL,
        "loginPath": "/login",
        "protectedPath": settings.E2E_PROTECTED_PATH,
        "loginRequestPattern": DEFAULT_LOGIN_REQUEST_PATTERN,
        "selectors": {
            "email": "[data-cy=email] input, [data-cy=email]",
            "password": "[data-cy=password] input, [data-cy=password]",
            "submit": "[data-cy=submit]",
            "logout": "[data-cy=logout]",
            "error": "text=/invalid|unauthorized|forbidden/i",
            "userIndicator": "[data-cy=user], header, nav",
        },
        "credentials": {
            "valid": {
                "email": settings.E2E_USER_EMAIL,
                "password": settings.E2E_USER_PASSWORD,
            },
            "invalid": {
                "email": "wrong@example.com",
                "password": "bad-pass",
            },
        },
        "messages": {
            "invalid": re.compile(r"invalid|unauthorized|forbidden", re.IGNORECASE),
        },
        "tokens": {
            "cookiePattern": re.compile(r"auth|token", re.IGNORECASE),
            "storageKeys": ["auth", "token", "refresh", "idToken"],
        },
    }


def load_auth_config(directory: Optional[str] = None, settings: Optional[Settings] = None) -> AuthConfig:
    """
    Resolve the auth configuration: defaults, then ``auth.config.json``.

    Pattern fields given as strings are compiled. A missing or empty
    ``loginRequestPattern`` falls back to the default one.

    :raises ConfigError: If the override file is malformed or yields an invalid config
    """
    settings = settings or get_settings()
    override = load_override_file(AUTH_CONFIG_FILE, directory or settings.E2E_CONFIG_DIR or None)
    merged = deep_merge(default_auth_config(settings), override)
    try:
        config = AuthConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"{AUTH_CONFIG_FILE}: {e}") from e
    if config.login_request_pattern is None:
        config = config.model_copy(update={"login_request_pattern": DEFAULT_LOGIN_REQUEST_PATTERN})
    return config


# -- flow primitives ---------------------------------------------------------


def go_to_login(page: Page, config: AuthConfig) -> None:
    if config.login_path:
        target = urljoin(config.base_url, config.login_path) if config.base_url else config.login_path
        page.goto(target)
    expect(page).to_have_url(LOGIN_URL)


def login_with(page: Page, config: AuthConfig, email: str, password: str) -> Optional[Response]:
    """
    Fill the login form and submit it.

    When ``login_request_pattern`` is set the submit click happens inside
    ``expect_response`` so the login call cannot slip past us.

    :return: The login response, or ``None`` without a request pattern
    """
    selectors = config.selectors
    page.locator(selectors.email).fill(email)
    page.locator(selectors.password).fill(password)

    pattern = config.login_request_pattern
    if pattern is None:
        page.locator(selectors.submit).click()
        return None

    with page.expect_response(lambda r: pattern.search(r.url) is not None) as response_info:
        page.locator(selectors.submit).click()
    response = response_info.value
    logger.info("Login request {} -> {}", response.url, response.status)
    return response


def assert_logged_in(page: Page, config: AuthConfig) -> None:
    expect(page).to_have_url(re.compile(config.protected_path))
    if config.selectors.user_indicator:
        expect(page.locator(config.selectors.user_indicator).first).to_be_visible()
    assert_tokens_present(page, config.tokens)


def assert_login_rejected(page: Page, config: AuthConfig) -> None:
    expect(page).not_to_have_url(re.compile(config.protected_path))
    if config.messages.invalid and config.selectors.error:
        expect(page.locator(config.selectors.error).first).to_contain_text(config.messages.invalid)
    assert_tokens_cleared(page, config.tokens)


def logout_and_verify(page: Page, config: AuthConfig) -> None:
    if config.selectors.logout:
        page.locator(config.selectors.logout).click()
    expect(page).to_have_url(LOGIN_URL)
    assert_tokens_cleared(page, config.tokens)


# -- token checks --------------------------------------------------------------


def matching_cookies(page: Page, pattern: re.Pattern[str]) -> List[str]:
    return [c["name"] for c in page.context.cookies() if pattern.search(c["name"])]


def stored_keys(page: Page, keys: Sequence[str]) -> Dict[str, List[str]]:
    """Which of ``keys`` are set in localStorage and sessionStorage."""
    return page.evaluate(_STORAGE_PROBE, list(keys))


def assert_tokens_present(page: Page, tokens: Optional[TokenExpectations]) -> None:
    if tokens is None:
        return
    if tokens.cookie_pattern is not None:
        names = matching_cookies(page, tokens.cookie_pattern)
        if not names:
            raise AssertionError(f"no auth cookie matching {describe(tokens.cookie_pattern)} after login")
    if tokens.storage_keys:
        storage = stored_keys(page, tokens.storage_keys)
        if not storage["local"] + storage["session"]:
            raise AssertionError(f"none of {tokens.storage_keys} found in local/session storage after login")


def assert_tokens_cleared(page: Page, tokens: Optional[TokenExpectations]) -> None:
    if tokens is None:
        return
    if tokens.cookie_pattern is not None:
        names = matching_cookies(page, tokens.cookie_pattern)
        if names:
            raise AssertionError(f"auth cookies still set: {names}")
    if tokens.storage_keys:
        storage = stored_keys(page, tokens.storage_keys)
        if storage["local"] or storage["session"]:
            raise AssertionError(
                f"auth storage keys still set: local={storage['local']} session={storage['session']}"
            )


# -- canned flows ------------------------------------------------------------


def synthetic_invalid_credentials() -> Credentials:
    return Credentials(email=f"{int(time.time() * 1000)}@example.com", password="bad-pass")


class AuthSuite:
    """The three auth journeys, bound to one resolved config."""

    def __init__(self, config: AuthConfig) -> None:
        self.config = config

    def happy_path(self, page: Page) -> None:
        valid = self.config.credentials.valid
        go_to_login(page, self.config)
        login_with(page, self.config, valid.email, valid.password)
        assert_logged_in(page, self.config)

    def invalid_login(self, page: Page) -> None:
        invalid = self.config.credentials.invalid or synthetic_invalid_credentials()
        go_to_login(page, self.config)
        login_with(page, self.config, invalid.email, invalid.password)
        assert_login_rejected(page, self.config)

    def logout(self, page: Page) -> None:
        logout_and_verify(page, self.config)


def auth_suite(directory: Optional[str] = None) -> AuthSuite:
    return AuthSuite(load_auth_config(directory))
