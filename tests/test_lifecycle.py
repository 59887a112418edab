import asyncio

import pytest

from ephemeral_paste.errors import PasteNotFound, PasteUnavailable, ValidationError
from ephemeral_paste.lifecycle import MAX_TIMESTAMP_MS, PasteLifecycle, format_timestamp


async def test_create_sets_fields(lifecycle, store):
    paste = await lifecycle.create("some text", ttl_seconds=30, max_views=5, now=2000)

    assert paste.views == 0
    assert paste.created_at == 2000
    assert paste.expires_at == 32000
    assert paste.max_views == 5
    assert await store.get(paste.id) == paste


async def test_create_without_limits(lifecycle):
    paste = await lifecycle.create("x", now=2000)
    assert paste.expires_at is None
    assert paste.max_views is None


async def test_ids_are_unique(lifecycle):
    ids = {(await lifecycle.create("x", now=1)).id for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) >= 22 for i in ids)


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"content": ""}, "empty content"),
        ({"content": "   \n\t"}, "empty content"),
        ({"content": None}, "empty content"),
        ({"content": "text", "ttl_seconds": 0}, "invalid ttl"),
        ({"content": "text", "ttl_seconds": -5}, "invalid ttl"),
        ({"content": "text", "ttl_seconds": 1.5}, "invalid ttl"),
        ({"content": "text", "ttl_seconds": True}, "invalid ttl"),
        ({"content": "text", "max_views": -1}, "invalid max_views"),
        ({"content": "text", "max_views": 0}, "invalid max_views"),
        ({"content": "text", "max_views": "3"}, "invalid max_views"),
    ],
)
async def test_create_rejects_bad_input(memory_store, kwargs, message):
    lifecycle = PasteLifecycle(memory_store)
    with pytest.raises(ValidationError, match=message):
        await lifecycle.create(now=1000, **kwargs)
    assert memory_store.store == {}


async def test_end_to_end_scenario(lifecycle, store):
    paste = await lifecycle.create("hello", ttl_seconds=10, max_views=1, now=1000)
    assert paste.expires_at == 11000
    assert paste.views == 0

    result = await lifecycle.read(paste.id, now=1005)
    assert result.content == "hello"
    assert result.remaining_views == 0
    assert result.expires_at == 11000
    assert (await store.get(paste.id)).views == 1

    with pytest.raises(PasteUnavailable):
        await lifecycle.read(paste.id, now=1006)


async def test_quota_expiry(lifecycle):
    paste = await lifecycle.create("twice", max_views=2, now=1000)

    first = await lifecycle.read(paste.id, now=1001)
    second = await lifecycle.read(paste.id, now=1002)
    assert (first.remaining_views, second.remaining_views) == (1, 0)

    with pytest.raises(PasteUnavailable):
        await lifecycle.read(paste.id, now=1003)


async def test_time_expiry(lifecycle, store):
    paste = await lifecycle.create("soon gone", ttl_seconds=1, now=1000)

    await lifecycle.read(paste.id, now=1999)
    with pytest.raises(PasteUnavailable):
        await lifecycle.read(paste.id, now=2000)
    assert (await store.get(paste.id)).views == 1


async def test_unlimited_paste(lifecycle):
    paste = await lifecycle.create("forever", now=1000)
    for i in range(25):
        result = await lifecycle.read(paste.id, now=1000 + i * 10**9)
        assert result.content == "forever"
        assert result.remaining_views is None
        assert result.expires_at is None


async def test_read_missing_paste(lifecycle):
    with pytest.raises(PasteNotFound):
        await lifecycle.read("does-not-exist", now=1000)


async def test_single_view_under_contention(lifecycle, store):
    paste = await lifecycle.create("only once", max_views=1, now=1000)

    outcomes = await asyncio.gather(
        *(lifecycle.read(paste.id, now=1001) for _ in range(20)),
        return_exceptions=True,
    )

    failures = [o for o in outcomes if isinstance(o, BaseException)]
    assert len(failures) == 19
    assert all(isinstance(f, PasteUnavailable) for f in failures)
    assert (await store.get(paste.id)).views == 1


def test_is_available_exposed_on_engine(memory_store):
    from ephemeral_paste.models import is_available

    assert PasteLifecycle(memory_store).is_available is is_available


@pytest.mark.parametrize(
    "ms, expected",
    [
        (None, None),
        (11000, "1970-01-01T00:00:11.000Z"),
        (1700000000123, "2023-11-14T22:13:20.123Z"),
    ],
)
def test_format_timestamp(ms, expected):
    assert format_timestamp(ms) == expected


async def test_expiry_up_to_latest_representable_time(lifecycle):
    now = MAX_TIMESTAMP_MS - 5000
    paste = await lifecycle.create("far future", ttl_seconds=5, now=now)
    assert paste.expires_at == MAX_TIMESTAMP_MS

    result = await lifecycle.read(paste.id, now=now + 1)
    assert format_timestamp(result.expires_at) == "9999-12-31T23:59:59.999Z"


@pytest.mark.parametrize("ttl_seconds", [6, 10**12, 10**17])
async def test_create_rejects_ttl_beyond_representable_time(lifecycle, ttl_seconds):
    with pytest.raises(ValidationError, match="invalid ttl"):
        await lifecycle.create("too far", ttl_seconds=ttl_seconds, now=MAX_TIMESTAMP_MS - 5000)
