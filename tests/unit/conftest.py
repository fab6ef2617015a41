"""
Unit test conftest.py - component-specific fixtures.

External collaborators (the requests session, the Fitbit OAuth client) are
mocked here; the credential store is always the real one from the root
conftest.
"""

from unittest.mock import Mock

import pytest
import requests

from fitbit_token_bridge.clients.fitbit_client import FitbitOAuthClient
from fitbit_token_bridge.schemas.token_record_schema import TokenResponse


@pytest.fixture
def make_response():
    """Factory for mock requests.Response objects with the attributes the clients read."""

    def _make(status_code: int = 200, json_body=None) -> Mock:
        response = Mock(spec=requests.Response)
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        if isinstance(json_body, Exception):
            response.json.side_effect = json_body
        else:
            response.json.return_value = json_body if json_body is not None else {}
        return response

    return _make


@pytest.fixture
def make_token_response():
    """Factory for successful token endpoint responses."""

    def _make(
        access_token: str = "new-access",
        refresh_token: str = "new-refresh",
        user_id: str = "f1",
        expires_in: int = 28800,
    ) -> TokenResponse:
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            user_id=user_id,
            expires_in=expires_in,
            token_type="Bearer",
        )

    return _make


@pytest.fixture
def http_session() -> Mock:
    """Mock requests.Session; configure post.return_value / side_effect per test."""
    return Mock(spec=requests.Session)


@pytest.fixture
def oauth_client() -> Mock:
    """Mock Fitbit OAuth client."""
    return Mock(spec=FitbitOAuthClient)
