"""
Login journeys against the application at ``E2E_BASE_URL``.

Selectors, credentials and messages come from ``auth.config.json``; see
``e2ekit.runner.auth`` for the defaults.
"""

import pytest

from e2ekit.runner.auth import auth_suite

pytestmark = pytest.mark.e2e


@pytest.fixture
def suite():
    return auth_suite()


def test_login_happy_path(page, suite):
    suite.happy_path(page)


def test_login_rejects_bad_credentials(page, suite):
    suite.invalid_login(page)


def test_logout_clears_session(page, suite):
    suite.happy_path(page)
    suite.logout(page)
