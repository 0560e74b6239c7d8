"""Tests for API dependencies."""

from unittest.mock import AsyncMock

import pytest
from starlette.requests import Request
from starlette.responses import Response

from director_auth.api.dependencies import (
    auth_rate_limit,
    get_bearer_token,
    get_client_ip,
    get_current_user,
    get_optional_user,
    require_roles,
)
from director_auth.core.auth.entities import User
from director_auth.core.auth.exceptions import (
    ExpiredTokenException,
    InvalidTokenException,
    NoTokenException,
    UserNotFoundException,
)
from director_auth.core.domain.enums import UserRole
from director_auth.core.exceptions import ForbiddenException, RateLimitExceededException
from director_auth.infrastructure.cache.rate_limiter import InMemoryRateLimiter


def make_request(headers=None, client=("10.0.0.9", 5000)) -> Request:
    raw_headers = [
        (name.lower().encode(), value.encode()) for name, value in (headers or {}).items()
    ]
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": raw_headers,
        "client": client,
    })


def make_user(role: UserRole = UserRole.USER) -> User:
    return User(id=1, username="alice", email="alice@x.com", hashed_password="hashed", role=role)


class TestClientIp:
    def test_first_forwarded_hop_wins(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        assert get_client_ip(request) == "203.0.113.7"

    def test_falls_back_to_peer(self):
        assert get_client_ip(make_request()) == "10.0.0.9"

    def test_no_peer(self):
        assert get_client_ip(make_request(client=None)) is None


class TestBearerToken:
    def test_reads_authorization_header(self):
        request = make_request({"Authorization": "Bearer abc"})

        assert get_bearer_token(request, None) == "abc"

    def test_lowercase_scheme(self):
        assert get_bearer_token(make_request({"Authorization": "bearer abc"}), None) == "abc"

    def test_other_scheme_or_missing_header(self):
        assert get_bearer_token(make_request({"Authorization": "Basic abc"}), None) is None
        assert get_bearer_token(make_request(), None) is None


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(NoTokenException):
            await get_current_user(None, AsyncMock())

    @pytest.mark.asyncio
    async def test_vanished_user_is_an_invalid_token(self):
        auth_service = AsyncMock()
        auth_service.get_current_user.side_effect = UserNotFoundException("1")

        with pytest.raises(InvalidTokenException) as exc_info:
            await get_current_user("token", auth_service)

        assert exc_info.value.status_code == 401


class TestOptionalUser:
    @pytest.mark.asyncio
    async def test_without_credentials(self):
        auth_service = AsyncMock()

        assert await get_optional_user(None, auth_service) is None
        auth_service.get_current_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_with_valid_token(self):
        user = make_user()
        auth_service = AsyncMock()
        auth_service.get_current_user.return_value = user

        assert await get_optional_user("token", auth_service) is user

    @pytest.mark.asyncio
    async def test_failure_yields_none(self):
        auth_service = AsyncMock()
        auth_service.get_current_user.side_effect = ExpiredTokenException()

        assert await get_optional_user("token", auth_service) is None


class TestRequireRoles:
    @pytest.mark.asyncio
    async def test_allows_listed_role(self):
        admin = make_user(UserRole.ADMIN)

        assert await require_roles(UserRole.ADMIN)(admin) is admin

    @pytest.mark.asyncio
    async def test_rejects_other_roles(self):
        with pytest.raises(ForbiddenException):
            await require_roles(UserRole.ADMIN)(make_user())


class TestAuthRateLimit:
    @pytest.mark.asyncio
    async def test_counts_per_client_and_rejects_over_budget(self):
        limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60)
        response = Response()

        await auth_rate_limit(make_request(), response, limiter)
        assert response.headers["X-RateLimit-Remaining"] == "0"

        with pytest.raises(RateLimitExceededException) as exc_info:
            await auth_rate_limit(make_request(), Response(), limiter)
        assert 0 < exc_info.value.retry_after <= 60

        await auth_rate_limit(make_request(client=("10.0.0.10", 5000)), Response(), limiter)
