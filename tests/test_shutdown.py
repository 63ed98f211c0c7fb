from __future__ import annotations

import httpx
import pytest

from ondevice_ai.services.shutdown import ShutdownCoordinator
from ondevice_ai.services.state_store import StateStore

from conftest import make_state


def _recording_transport(requests: list[httpx.Request], status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status, text="Shutting down")

    return httpx.MockTransport(handler)


async def test_shutdown_without_state_is_noop(store: StateStore) -> None:
    requests: list[httpx.Request] = []
    coordinator = ShutdownCoordinator(store, transport=_recording_transport(requests))

    assert await coordinator.shutdown() is False
    assert requests == []
    assert not store.path.exists()


async def test_shutdown_posts_to_admin_endpoint_with_bearer_token(store: StateStore) -> None:
    store.write(make_state(port=9999, token="secret"))
    requests: list[httpx.Request] = []
    coordinator = ShutdownCoordinator(store, transport=_recording_transport(requests))

    assert await coordinator.shutdown() is True

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://127.0.0.1:9999/admin/shutdown"
    assert request.headers["Authorization"] == "Bearer secret"
    assert not store.path.exists()


async def test_shutdown_without_token_sends_no_authorization(store: StateStore) -> None:
    store.write(make_state(port=9999, token=None))
    requests: list[httpx.Request] = []
    coordinator = ShutdownCoordinator(store, transport=_recording_transport(requests))

    await coordinator.shutdown()

    assert "Authorization" not in requests[0].headers


@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("refused"), httpx.ReadTimeout("timed out"), RuntimeError("boom")],
)
async def test_shutdown_clears_state_even_when_request_fails(
    store: StateStore, error: Exception
) -> None:
    store.write(make_state(port=9999))

    def handler(request: httpx.Request) -> httpx.Response:
        raise error

    coordinator = ShutdownCoordinator(store, transport=httpx.MockTransport(handler))

    assert await coordinator.shutdown() is True
    assert not store.path.exists()


async def test_shutdown_clears_state_on_error_status(store: StateStore) -> None:
    store.write(make_state(port=9999))
    requests: list[httpx.Request] = []
    coordinator = ShutdownCoordinator(store, transport=_recording_transport(requests, status=401))

    assert await coordinator.shutdown() is True
    assert not store.path.exists()


async def test_shutdown_is_idempotent(store: StateStore) -> None:
    store.write(make_state(port=9999))
    requests: list[httpx.Request] = []
    coordinator = ShutdownCoordinator(store, transport=_recording_transport(requests))

    assert await coordinator.shutdown() is True
    assert await coordinator.shutdown() is False
    assert len(requests) == 1
