import asyncio
import time

import httpx
import pytest

from grafibot.core.errors import CatalogUnavailable, UpstreamUnavailable

from conftest import make_row


class FlakyInventory:
    """Serves rows until switched off, then answers 503."""

    def __init__(self, rows):
        self.rows = rows
        self.up = True
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if not self.up:
            return httpx.Response(503)
        return httpx.Response(200, json={"products": self.rows})


async def test_refresh_builds_snapshot(make_catalog):
    catalog = make_catalog([
        make_row(1, "Papel bond carta", code="PB", stock=2, warehouse="X"),
        make_row(2, "Papel bond carta", code="PB", stock=3, warehouse="Y"),
        make_row(3, "Tinta negra", code="TN", stock=0),
    ])

    assert not catalog.is_ready
    products = await catalog.refresh()

    assert catalog.is_ready
    assert [p.product_id for p in products] == [1]
    assert catalog.get_product(1).total_stock == 5
    assert catalog.get_product(3) is None
    assert catalog.products() == [catalog.get_product(1)]


async def test_query_ranks_matching_product_first(catalog):
    results = await catalog.query("tinta negra epson", limit=3)

    assert results[0][0].product_id == 202
    assert results[0][1] > results[1][1]


async def test_failed_refresh_keeps_previous_snapshot(make_catalog):
    inventory = FlakyInventory([make_row(1, "Papel bond carta", code="PB")])
    catalog = make_catalog(handler=inventory)
    await catalog.refresh()
    before = catalog.snapshot

    inventory.up = False
    with pytest.raises(UpstreamUnavailable):
        await catalog.refresh()

    assert catalog.snapshot is before
    assert catalog.get_product(1) is not None


async def test_stale_snapshot_served_when_refresh_fails(make_catalog):
    inventory = FlakyInventory([make_row(1, "Papel bond carta", code="PB")])
    catalog = make_catalog(handler=inventory, refresh_interval=60)
    await catalog.refresh()

    inventory.up = False
    catalog.snapshot.loaded_at -= 3600

    results = await catalog.query("papel bond carta")
    assert [p.product_id for p, _ in results] == [1]

    # No second attempt before the retry delay
    calls = inventory.calls
    await catalog.query("papel bond carta")
    assert inventory.calls == calls


async def test_refresh_swaps_to_new_products(make_catalog):
    inventory = FlakyInventory([make_row(1, "Papel bond carta", code="PB")])
    catalog = make_catalog(handler=inventory)
    await catalog.refresh()
    first_collection = catalog.snapshot.index.collection_name

    inventory.rows = [make_row(2, "Cartulina opalina", code="CO")]
    await catalog.refresh()

    assert catalog.get_product(1) is None
    assert catalog.get_product(2) is not None
    assert catalog.snapshot.index.collection_name != first_collection
    results = await catalog.query("cartulina opalina")
    assert [p.product_id for p, _ in results] == [2]


async def test_query_without_any_catalog_raises(make_catalog):
    catalog = make_catalog(handler=lambda request: httpx.Response(503))

    with pytest.raises(CatalogUnavailable):
        await catalog.query("papel")
    with pytest.raises(CatalogUnavailable):
        catalog.get_product(1)


async def test_empty_catalog_is_ready_and_returns_nothing(make_catalog):
    catalog = make_catalog([make_row(1, "Papel bond", stock=0)])

    assert await catalog.refresh() == []
    assert catalog.is_ready
    assert catalog.products() == []
    assert await catalog.query("papel bond") == []


class SlowInventory(FlakyInventory):
    """Answers after `delay` seconds."""

    def __init__(self, rows, delay=0.0):
        super().__init__(rows)
        self.delay = delay

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(self.delay)
        return super().__call__(request)


class SlowQueryEmbedder:
    """Delays query embeddings so a query stays in flight."""

    def __init__(self, inner, delay: float):
        self.inner = inner
        self.delay = delay

    def encode_documents(self, texts):
        return self.inner.encode_documents(texts)

    def encode_query(self, text):
        time.sleep(self.delay)
        return self.inner.encode_query(text)


async def test_stale_snapshot_answers_while_refresh_runs(make_catalog):
    inventory = SlowInventory([make_row(1, "Papel bond carta", code="PB")])
    catalog = make_catalog(handler=inventory, refresh_interval=60)
    await catalog.refresh()
    stale = catalog.snapshot
    stale.loaded_at -= 3600

    inventory.delay = 1.0
    refresh = asyncio.create_task(catalog.refresh())
    await asyncio.sleep(0.05)

    results = await asyncio.wait_for(catalog.query("papel bond carta"), timeout=0.5)

    assert [p.product_id for p, _ in results] == [1]
    assert not refresh.done()
    await refresh
    assert catalog.snapshot is not stale


async def test_index_in_use_survives_refreshes(make_catalog, embedder, vector_db):
    inventory = FlakyInventory([make_row(1, "Papel bond carta", code="PB")])
    catalog = make_catalog(
        handler=inventory,
        embedding_service=SlowQueryEmbedder(embedder, delay=0.5),
    )
    await catalog.refresh()
    first_collection = catalog.snapshot.index.collection_name

    query = asyncio.create_task(catalog.query("papel bond carta"))
    await asyncio.sleep(0.05)
    await catalog.refresh()
    second_collection = catalog.snapshot.index.collection_name
    await catalog.refresh()

    results = await query

    assert [p.product_id for p, _ in results] == [1]
    assert not vector_db.client.collection_exists(first_collection)
    assert not vector_db.client.collection_exists(second_collection)
    assert vector_db.client.collection_exists(catalog.snapshot.index.collection_name)
