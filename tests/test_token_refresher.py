"""
Tests for the TokenRefresher — cached vs. refreshed tokens and failure
atomicity.
"""

from datetime import timedelta

import pytest

from core.errors import UpstreamAuthError
from core.token_refresher import TokenRefresher
from database.models import Integration
from tests.fakes import APP_URL, CLIENT_SECRET, FakeHub


async def _reload(session_factory, integration_id) -> Integration:
    async with session_factory() as fresh:
        return await fresh.get(Integration, integration_id)


@pytest.fixture
def refresher(store, connector, clock) -> TokenRefresher:
    return TokenRefresher(store, connector, clock)


@pytest.fixture
def expire(integration, clock):
    def _expire() -> None:
        integration.access_token_expires_at = clock.now() - timedelta(seconds=1)

    return _expire


class TestCachedToken:
    @pytest.mark.asyncio
    async def test_fresh_token_is_returned_without_calling_hub(self, refresher, integration, fake_hub):
        assert await refresher.get_valid_access_token(integration) == "A1"
        assert fake_hub.requests == []

    @pytest.mark.asyncio
    async def test_expiry_instant_counts_as_expired(self, refresher, integration, clock, fake_hub):
        integration.access_token_expires_at = clock.now()
        assert await refresher.get_valid_access_token(integration) == "A2"
        assert len(fake_hub.requests_to("/auth/token")) == 1


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_persists_new_token(
        self, refresher, integration, expire, clock, fake_hub, session_factory
    ):
        expire()
        fake_hub.token_payload = {"access_token": "A2", "expires_in": 3600}

        assert await refresher.get_valid_access_token(integration) == "A2"

        stored = await _reload(session_factory, integration.id)
        assert stored.access_token == "A2"
        assert stored.access_token_expires_at == clock.now() + timedelta(seconds=3600)
        assert stored.refresh_token == "R1"

    @pytest.mark.asyncio
    async def test_refresh_request_shape(self, refresher, integration, expire, fake_hub):
        expire()
        await refresher.get_valid_access_token(integration)

        (request,) = fake_hub.requests_to("/auth/token")
        assert request.method == "POST"
        assert request.url.host == "hub.example"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert FakeHub.form(request) == {
            "grant_type": "refresh_token",
            "refresh_token": "R1",
            "client_id": APP_URL,
            "client_secret": CLIENT_SECRET,
        }

    @pytest.mark.asyncio
    async def test_refreshed_token_is_reused(self, refresher, integration, expire, clock, fake_hub):
        expire()
        await refresher.get_valid_access_token(integration)
        clock.advance(minutes=30)
        assert await refresher.get_valid_access_token(integration) == "A2"
        assert len(fake_hub.requests_to("/auth/token")) == 1

    @pytest.mark.asyncio
    async def test_rotated_refresh_token_is_stored(
        self, refresher, integration, expire, fake_hub, session_factory
    ):
        expire()
        fake_hub.token_payload = {"access_token": "A2", "expires_in": 60, "refresh_token": "R2"}

        await refresher.get_valid_access_token(integration)
        assert (await _reload(session_factory, integration.id)).refresh_token == "R2"


class TestRefreshFailure:
    async def _assert_untouched(self, integration, session_factory, clock):
        assert integration.access_token == "A1"
        stored = await _reload(session_factory, integration.id)
        assert stored.access_token == "A1"
        assert stored.access_token_expires_at == clock.now() - timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_rejected_refresh(self, refresher, integration, expire, fake_hub, clock, session_factory):
        expire()
        await refresher.store.save(integration)
        fake_hub.token_status = 400
        fake_hub.token_payload = {"error": "invalid_grant"}

        with pytest.raises(UpstreamAuthError):
            await refresher.get_valid_access_token(integration)
        await self._assert_untouched(integration, session_factory, clock)

    @pytest.mark.asyncio
    async def test_malformed_json(self, refresher, integration, expire, fake_hub, clock, session_factory):
        expire()
        await refresher.store.save(integration)
        fake_hub.token_payload = b"<html>oops</html>"

        with pytest.raises(UpstreamAuthError):
            await refresher.get_valid_access_token(integration)
        await self._assert_untouched(integration, session_factory, clock)

    @pytest.mark.asyncio
    async def test_missing_fields(self, refresher, integration, expire, fake_hub):
        expire()
        fake_hub.token_payload = {"access_token": "A2"}

        with pytest.raises(UpstreamAuthError):
            await refresher.get_valid_access_token(integration)

    @pytest.mark.asyncio
    async def test_hub_unreachable(self, refresher, integration, expire, fake_hub):
        expire()
        fake_hub.unreachable = True

        with pytest.raises(UpstreamAuthError):
            await refresher.get_valid_access_token(integration)

    @pytest.mark.asyncio
    async def test_setup_pending(self, refresher, integration, expire, fake_hub):
        expire()
        integration.refresh_token = None

        with pytest.raises(UpstreamAuthError):
            await refresher.get_valid_access_token(integration)
        assert fake_hub.requests == []

    @pytest.mark.asyncio
    async def test_out_of_range_lifetime(self, refresher, integration, expire, fake_hub, clock, session_factory):
        expire()
        await refresher.store.save(integration)
        fake_hub.token_payload = {"access_token": "A2", "expires_in": 10**12}

        with pytest.raises(UpstreamAuthError):
            await refresher.get_valid_access_token(integration)
        await self._assert_untouched(integration, session_factory, clock)
