import pytest

from app.catalogs import DETAILS_NOT_AVAILABLE, CatalogEntry, CatalogRegistry
from app.schemas import NormalizedResult


def _entry(label, display_name, calls, with_details=True, aliases=()):
    async def search(keywords):
        calls.append((label, "search", keywords))
        return [{"id": f"{label}-1"}]

    async def get_details(dataset_id):
        calls.append((label, "details", dataset_id))
        return {"id": dataset_id, "source": label}

    return CatalogEntry(
        label=label,
        display_name=display_name,
        search=search,
        get_details=get_details if with_details else None,
        normalize=lambda item: NormalizedResult(id=item["id"], source=display_name),
        aliases=aliases,
    )


def _registry(calls):
    registry = CatalogRegistry()
    registry.register(_entry("Alpha", "Alpha Hub", calls))
    registry.register(_entry("Beta", "Beta Portal", calls, aliases=("beta.io",)), default=True)
    registry.register(_entry("Gamma", "Gamma", calls, with_details=False))
    return registry


def test_lookup_matches_label_display_name_and_alias():
    registry = _registry([])
    assert registry.lookup("alpha").label == "Alpha"
    assert registry.lookup("ALPHA HUB").label == "Alpha"
    assert registry.lookup(" beta.io ").label == "Beta"
    assert registry.lookup("delta") is None
    assert registry.lookup(None) is None


def test_resolve_falls_back_to_default():
    registry = _registry([])
    assert registry.resolve("delta").label == "Beta"
    assert registry.resolve(None).label == "Beta"
    assert registry.resolve("gamma").label == "Gamma"


def test_empty_registry_cannot_resolve():
    with pytest.raises(LookupError):
        CatalogRegistry().resolve("anything")


@pytest.mark.asyncio
async def test_search_normalizes_with_entry_mapper():
    calls = []
    results = await _registry(calls).search("alpha", "kw")
    assert calls == [("Alpha", "search", "kw")]
    assert results[0].source == "Alpha Hub"


@pytest.mark.asyncio
async def test_details_are_strict_about_source():
    calls = []
    registry = _registry(calls)
    assert await registry.get_details("Beta Portal", "x") == {"id": "x", "source": "Beta"}
    assert await registry.get_details("delta", "x") == DETAILS_NOT_AVAILABLE
    assert await registry.get_details("gamma", "x") == DETAILS_NOT_AVAILABLE
    assert calls == [("Beta", "details", "x")]
