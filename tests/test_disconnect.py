import asyncio
import logging
from types import SimpleNamespace

import pytest

from app.errors import CatalogError
from app.main import CLIENT_CLOSED_REQUEST, ClientDisconnected, guarded, run_until_disconnect


class FakeRequest:
    def __init__(self, disconnect_after: int = 0, poll_s: float = 0.01):
        self.disconnect_after = disconnect_after
        self.polls = 0
        self.app = SimpleNamespace(state=SimpleNamespace(disconnect_poll_s=poll_s))

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self.polls > self.disconnect_after


@pytest.mark.asyncio
async def test_finished_work_returns_result():
    async def work():
        return "done"

    assert await run_until_disconnect(FakeRequest(disconnect_after=100), work(), poll_s=0.01) == "done"


@pytest.mark.asyncio
async def test_disconnect_cancels_upstream_work():
    state = {"cancelled": False}

    async def slow():
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise

    with pytest.raises(ClientDisconnected):
        await run_until_disconnect(FakeRequest(disconnect_after=1), slow(), poll_s=0.01)
    await asyncio.sleep(0.01)
    assert state["cancelled"]


@pytest.mark.asyncio
async def test_guarded_maps_disconnect_to_499():
    async def slow():
        await asyncio.sleep(5)

    response = await guarded(FakeRequest(disconnect_after=0), slow(), "search")
    assert response.status_code == CLIENT_CLOSED_REQUEST


@pytest.mark.asyncio
async def test_guarded_maps_domain_and_unexpected_errors():
    async def catalog_failure():
        raise CatalogError("Kaggle")

    async def crash():
        raise RuntimeError("boom")

    response = await guarded(FakeRequest(disconnect_after=100), catalog_failure(), "search")
    assert response.status_code == 500
    assert response.body == b'{"error":"Failed to fetch from Kaggle."}'

    response = await guarded(FakeRequest(disconnect_after=100), crash(), "details")
    assert response.status_code == 500
    assert response.body == b'{"error":"Failed to complete details request."}'


@pytest.mark.asyncio
async def test_guarded_logs_error_details(caplog):
    async def cli_failure():
        raise CatalogError("Kaggle", details={"exit_code": 2})

    with caplog.at_level(logging.ERROR, logger="uvicorn.error"):
        response = await guarded(FakeRequest(disconnect_after=100), cli_failure(), "search")
    assert response.status_code == 500
    assert "{'exit_code': 2}" in caplog.text
