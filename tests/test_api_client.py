from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import niquests
import pytest
import pytest_asyncio

from tracktv.core.auth import AuthContext
from tracktv.core.config import Settings
from tracktv.services.api_client import TrackerClient
from tracktv.services.responses import (
    ApiRequestError,
    NotAuthenticatedError,
    TransportError,
)


def make_response(status_code: int, body: bytes, url: str = "http://backend/api"):
    """Build a stand-in for a niquests response."""
    return SimpleNamespace(status_code=status_code, content=body, url=url)


@pytest_asyncio.fixture
async def client():
    auth = AuthContext(token="secret-token")
    tracker = TrackerClient(auth, Settings(api_base_url="http://backend/api"))
    yield tracker
    await tracker.aclose()


@pytest.mark.asyncio
async def test_every_request_carries_bearer_token(client):
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        mock_req.return_value = make_response(200, b"[]")

        shows = await client.list_shows()

        assert shows == []
        method, url = mock_req.call_args.args
        assert method == "GET"
        assert url == "http://backend/api/shows"
        headers = mock_req.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_endpoint_paths_and_methods(client):
    """Each operation maps onto its documented method and path."""
    calls = [
        (client.list_episodes("12"), "GET", "shows/12/episodes"),
        (client.add_show("12"), "POST", "shows/12"),
        (client.toggle_show_ignored("12"), "PUT", "shows/12/ignore"),
        (client.update_episode("99", watched=True), "PATCH", "episodes/99"),
        (client.clear_all(), "DELETE", "admin/clear-all"),
        (client.refresh_shows(), "PUT", "refresh/shows"),
        (client.add_episode("12", {"season": 1}), "POST", "shows/12/episodes"),
    ]
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        mock_req.return_value = make_response(200, b"{}")
        for coro, method, path in calls:
            mock_req.reset_mock()
            mock_req.return_value = make_response(200, b"{}")
            await coro
            assert mock_req.call_args.args == (method, f"http://backend/api/{path}")


@pytest.mark.asyncio
async def test_patch_sends_fields_as_json(client):
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        mock_req.return_value = make_response(200, b'{"watched": true}')

        await client.update_episode("99", watched=True)

        assert mock_req.call_args.kwargs["json"] == {"watched": True}
        assert mock_req.call_args.kwargs["headers"]["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_create_show_defaults_status(client):
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        mock_req.return_value = make_response(201, b'{"tvMazeId": "5"}')

        await client.create_show("5", "Fargo")

        assert mock_req.call_args.kwargs["json"] == {
            "tvMazeId": "5",
            "name": "Fargo",
            "image": None,
            "status": "Unknown",
        }


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped(client):
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        original = niquests.exceptions.ConnectionError("connection refused")
        mock_req.side_effect = original

        with pytest.raises(TransportError) as excinfo:
            await client.list_shows()

        assert excinfo.value.original_exception is original
        assert excinfo.value.__cause__ is original


@pytest.mark.asyncio
async def test_delete_accepts_empty_success_body(client):
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        mock_req.return_value = make_response(204, b"")

        assert await client.delete_show("12") is None


@pytest.mark.asyncio
async def test_delete_failure_raises_server_message(client):
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        mock_req.return_value = make_response(403, b'{"error": "Forbidden"}')

        with pytest.raises(ApiRequestError, match="Forbidden"):
            await client.delete_show("12")


@pytest.mark.asyncio
async def test_catalog_lookup_is_cached(client):
    with patch.object(client.session, "request", new_callable=AsyncMock) as mock_req:
        mock_req.return_value = make_response(200, b'{"name": "Fargo"}')
        first = await client.get_catalog_show("5")

        mock_req.return_value = make_response(200, b'{"name": "Other"}')
        second = await client.get_catalog_show(5)

        assert first == second == {"name": "Fargo"}
        assert mock_req.await_count == 1


@pytest.mark.asyncio
async def test_request_without_token_is_refused_before_sending():
    tracker = TrackerClient(AuthContext(), Settings(api_base_url="http://backend/api"))
    try:
        with patch.object(
            tracker.session, "request", new_callable=AsyncMock
        ) as mock_req:
            with pytest.raises(NotAuthenticatedError, match="without a token"):
                await tracker.list_shows()
            mock_req.assert_not_called()
    finally:
        await tracker.aclose()
