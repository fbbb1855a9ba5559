from pathlib import Path

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from app.catalogs import Catalogs
from app.config import AppSettings
from app.main import create_app
from tests.fakes import FakeCatalog, FakeChatClient


def make_settings(**overrides) -> AppSettings:
    settings = AppSettings(
        openrouter_api_key="test-key",
        openrouter_base_url="http://llm.test/v1",
        router_model="test-model",
        kaggle_cli_path="kaggle",
        ckan_base_url="http://ckan.test",
        hf_base_url="http://hf.test",
        host="127.0.0.1",
        port=3001,
    )
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def make_catalogs(
    kaggle: FakeCatalog | None = None,
    ckan: FakeCatalog | None = None,
    huggingface: FakeCatalog | None = None,
) -> Catalogs:
    return Catalogs(
        kaggle=kaggle or FakeCatalog("Kaggle"),
        ckan=ckan or FakeCatalog("data.gov (CKAN)"),
        huggingface=huggingface or FakeCatalog("Hugging Face"),
    )


@pytest.fixture
def app_factory():
    def _factory(
        *,
        fake_chat: FakeChatClient | None = None,
        catalogs: Catalogs | None = None,
        **settings_overrides,
    ):
        settings = make_settings(**settings_overrides)
        chat_client = fake_chat or FakeChatClient()
        fake_catalogs = catalogs or make_catalogs()
        app = create_app(settings, chat_client=chat_client, catalogs=fake_catalogs)
        return app, chat_client, fake_catalogs

    return _factory


@pytest.fixture
async def client(app_factory):
    app, chat_client, catalogs = app_factory()
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as http_client:
            http_client.app = app  # type: ignore[attr-defined]
            http_client.fake_chat = chat_client  # type: ignore[attr-defined]
            http_client.catalogs = catalogs  # type: ignore[attr-defined]
            yield http_client
