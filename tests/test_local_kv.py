"""Unit tests for the in-memory key-value store."""

import asyncio
import json

import pytest

from kvlimit.adapters.kv.local import LocalKV
from kvlimit.core.errors import NonNumericValueError, StoreAppError


@pytest.mark.asyncio
async def test_set_and_get(kv: LocalKV) -> None:
    assert await kv.set("key1", "value1") is True
    assert await kv.get("key1") == "value1"


@pytest.mark.asyncio
async def test_get_missing_key_returns_none(kv: LocalKV) -> None:
    assert await kv.get("missing") is None


@pytest.mark.asyncio
async def test_key_with_px_expires(kv: LocalKV, clock) -> None:
    await kv.set("expiring", "value", px=1000)

    clock.advance(0.5)
    assert await kv.get("expiring") == "value"

    clock.advance(0.625)
    assert await kv.get("expiring") is None


@pytest.mark.asyncio
async def test_reset_with_new_px_replaces_previous_deadline(kv: LocalKV, clock) -> None:
    await kv.set("key3", "original", px=1000)
    clock.advance(0.5)
    await kv.set("key3", "updated", px=2000)

    # Past the old deadline, before the new one.
    clock.advance(1.0)
    assert await kv.get("key3") == "updated"

    clock.advance(1.125)
    assert await kv.get("key3") is None


@pytest.mark.asyncio
async def test_plain_set_clears_existing_expiry(kv: LocalKV, clock) -> None:
    await kv.set("key", "a", px=1000)
    await kv.set("key", "b")

    clock.advance(5)
    assert await kv.get("key") == "b"
    assert await kv.ttl("key") == -1


@pytest.mark.asyncio
async def test_set_with_keepttl_keeps_existing_expiry(kv: LocalKV, clock) -> None:
    await kv.set("key", "a", px=1000)
    await kv.set("key", "b", keepttl=True)

    clock.advance(0.5)
    assert await kv.get("key") == "b"
    clock.advance(0.625)
    assert await kv.get("key") is None


@pytest.mark.asyncio
async def test_pexpire_on_existing_key(kv: LocalKV, clock) -> None:
    await kv.set("key2", "value2")

    assert await kv.pexpire("key2", 1000) == 1
    assert await kv.get("key2") == "value2"

    clock.advance(1.125)
    assert await kv.get("key2") is None


@pytest.mark.asyncio
async def test_pexpire_on_absent_key_is_noop(kv: LocalKV) -> None:
    assert await kv.pexpire("nope", 1000) == 0
    assert await kv.get("nope") is None
    assert kv.stats()["expiring"] == 0


@pytest.mark.asyncio
async def test_pexpire_rearms_instead_of_stacking(kv: LocalKV, clock) -> None:
    await kv.set("key", "v", px=1000)
    clock.advance(0.75)
    assert await kv.pexpire("key", 1000) == 1

    clock.advance(0.5)
    assert await kv.get("key") == "v"
    assert await kv.ttl("key") == 500


@pytest.mark.asyncio
async def test_incr_and_incrby(kv: LocalKV) -> None:
    assert await kv.incr("counter") == 1
    assert await kv.incr("counter") == 2
    assert await kv.incrby("counter2", 5) == 5
    assert await kv.incrby("counter2", 3) == 8
    assert await kv.incrby("counter2", -10) == -2
    assert await kv.get("counter2") == "-2"


@pytest.mark.asyncio
async def test_incrby_on_non_numeric_value_raises(kv: LocalKV) -> None:
    await kv.set("text", "abc")

    with pytest.raises(NonNumericValueError) as exc_info:
        await kv.incrby("text", 1)

    assert exc_info.value.code == "non_numeric_value"
    assert isinstance(exc_info.value, StoreAppError)
    assert await kv.get("text") == "abc"


@pytest.mark.asyncio
async def test_incrby_on_hash_value_raises(kv: LocalKV) -> None:
    await kv.hmset("hash", {"tokens": "1"})

    with pytest.raises(NonNumericValueError):
        await kv.incr("hash")


@pytest.mark.asyncio
async def test_incr_keeps_existing_expiry(kv: LocalKV, clock) -> None:
    await kv.incr("counter")
    await kv.pexpire("counter", 1000)
    await kv.incr("counter")

    clock.advance(1.0)
    assert await kv.get("counter") is None
    assert await kv.incr("counter") == 1


@pytest.mark.asyncio
async def test_hmset_and_hmget(kv: LocalKV) -> None:
    await kv.hmset("hash1", {"field1": "value1", "field2": "value2"})

    values = await kv.hmget("hash1", "field1", "field2", "nonexistent")
    assert values == ["value1", "value2", ""]


@pytest.mark.asyncio
async def test_hmget_on_missing_key_returns_empty_strings(kv: LocalKV) -> None:
    assert await kv.hmget("missing", "a", "b") == ["", ""]


@pytest.mark.asyncio
async def test_hmset_merges_fields(kv: LocalKV) -> None:
    await kv.hmset("hash2", {"field1": "original", "field2": "original"})
    await kv.hmset("hash2", {"field1": "updated"})

    assert await kv.hmget("hash2", "field1", "field2") == ["updated", "original"]
    assert json.loads(await kv.get("hash2")) == {"field1": "updated", "field2": "original"}


@pytest.mark.asyncio
async def test_hash_on_plain_string_value_reads_as_empty(kv: LocalKV) -> None:
    await kv.set("plain", "not-json")

    assert await kv.hmget("plain", "a") == [""]
    await kv.hmset("plain", {"a": "1"})
    assert await kv.hmget("plain", "a") == ["1"]


@pytest.mark.asyncio
async def test_delete_counts_every_argument(kv: LocalKV) -> None:
    await kv.set("key4", "value", px=1000)

    assert await kv.delete("key4", "never-existed") == 2
    assert await kv.get("key4") is None
    assert kv.stats()["expiring"] == 0


@pytest.mark.asyncio
async def test_ttl_reports_absent_persistent_and_expiring(kv: LocalKV, clock) -> None:
    assert await kv.ttl("missing") == -2

    await kv.set("persistent", "v")
    assert await kv.ttl("persistent") == -1

    await kv.set("expiring", "v", px=2000)
    clock.advance(0.5)
    assert await kv.ttl("expiring") == 1500


@pytest.mark.asyncio
async def test_clear_releases_all_keys_and_handles(kv: LocalKV) -> None:
    await kv.set("a", "1", px=1000)
    await kv.set("b", "2")

    kv.clear()

    assert len(kv) == 0
    assert kv.stats() == {"keys": 0, "expiring": 0, "expired_evictions": 0}
    assert await kv.get("a") is None


@pytest.mark.asyncio
async def test_expired_keys_are_swept_on_write(kv: LocalKV, clock) -> None:
    await kv.set("a", "1", px=1000)
    await kv.set("b", "2", px=1000)
    clock.advance(2)

    await kv.set("c", "3")

    stats = kv.stats()
    assert stats["keys"] == 1
    assert stats["expiring"] == 0
    assert stats["expired_evictions"] == 2


@pytest.mark.asyncio
async def test_concurrent_increments_do_not_lose_updates() -> None:
    kv = LocalKV()

    await asyncio.gather(*(kv.incr("shared") for _ in range(200)))

    assert await kv.get("shared") == "200"
    kv.clear()


@pytest.mark.asyncio
async def test_set_with_zero_px_expires_immediately(kv: LocalKV) -> None:
    await kv.set("key", "a", px=1000)
    await kv.set("key", "b", px=0)

    assert await kv.get("key") is None
    assert await kv.ttl("key") == -2


@pytest.mark.asyncio
async def test_incrby_sweeps_other_expired_keys(kv: LocalKV, clock) -> None:
    await kv.incr("old")
    await kv.pexpire("old", 1000)
    clock.advance(2)

    await kv.incr("new")

    assert "old" not in kv._values
    assert "old" not in kv._expirations


@pytest.mark.asyncio
async def test_hmset_sweeps_other_expired_keys(kv: LocalKV, clock) -> None:
    await kv.hmset("old", {"tokens": "1"})
    await kv.pexpire("old", 1000)
    clock.advance(2)

    await kv.hmset("new", {"tokens": "1"})

    assert list(kv._values) == ["new"]
    assert kv._expirations == {}
