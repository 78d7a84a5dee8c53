"""
Tests for the shared query cache.
"""
import asyncio
import gc

from schedclient import cache as keys
from schedclient.cache import QueryCache


def _counting_loader(value="v"):
    calls = []

    async def loader():
        calls.append(1)
        await asyncio.sleep(0)
        return value

    return loader, calls


class TestQueryCache:
    def test_hit_after_load(self):
        cache = QueryCache()
        loader, calls = _counting_loader()

        async def scenario():
            await cache.get(keys.all_matches(), loader)
            return await cache.get(keys.all_matches(), loader)

        assert asyncio.run(scenario()) == "v"
        assert len(calls) == 1

    def test_invalidate_prefix_refetches(self):
        cache = QueryCache()
        loader, calls = _counting_loader()

        async def scenario():
            await cache.get(keys.stage_matches("a"), loader)
            await cache.get(keys.stage_matches("b"), loader)
            await cache.get(keys.stage_readiness("a"), loader)
            n = cache.invalidate(keys.all_matches())
            await cache.get(keys.stage_matches("a"), loader)
            await cache.get(keys.stage_readiness("a"), loader)
            return n

        assert asyncio.run(scenario()) == 2
        assert len(calls) == 4
        assert cache.is_stale(keys.stage_matches("b"))

    def test_concurrent_readers_share_one_load(self):
        cache = QueryCache()
        loader, calls = _counting_loader()

        async def scenario():
            return await asyncio.gather(*(cache.get(keys.stage_matches("a"), loader) for _ in range(5)))

        assert asyncio.run(scenario()) == ["v"] * 5
        assert len(calls) == 1

    def test_failed_load_not_cached(self):
        cache = QueryCache()
        attempts = []

        async def loader():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return "ok"

        async def scenario():
            try:
                await cache.get(("k",), loader)
            except RuntimeError:
                pass
            return await cache.get(("k",), loader)

        assert asyncio.run(scenario()) == "ok"

    def test_stale_after_ttl(self):
        cache = QueryCache(stale_seconds=0)
        loader, calls = _counting_loader()

        async def scenario():
            await cache.get(("k",), loader)
            await cache.get(("k",), loader)

        asyncio.run(scenario())
        assert len(calls) == 2
        assert cache.peek(("k",)) == "v"

    def test_invalidate_during_load_refetches(self):
        """A load overtaken by an invalidation does not become the cached value."""
        cache = QueryCache()
        key = keys.stage_matches("s1")

        async def scenario():
            gate = asyncio.Event()

            async def old_loader():
                await gate.wait()
                return ["old"]

            async def new_loader():
                return ["new"]

            reader = asyncio.ensure_future(cache.get(key, old_loader))
            await asyncio.sleep(0)
            cache.invalidate(keys.all_matches())
            gate.set()
            first = await reader
            second = await cache.get(key, new_loader)
            return first, second

        assert asyncio.run(scenario()) == (["old"], ["new"])
        assert cache.peek(key) == ["new"]

    def test_reader_after_invalidate_does_not_join_old_load(self):
        cache = QueryCache()
        key = keys.stage_matches("s1")
        calls = []

        async def scenario():
            gate = asyncio.Event()

            async def old_loader():
                calls.append("old")
                await gate.wait()
                return "old"

            async def new_loader():
                calls.append("new")
                return "new"

            reader = asyncio.ensure_future(cache.get(key, old_loader))
            await asyncio.sleep(0)
            cache.invalidate(key)
            late = await cache.get(key, new_loader)
            gate.set()
            return await reader, late

        assert asyncio.run(scenario()) == ("old", "new")
        assert calls == ["old", "new"]
        assert cache.peek(key) == "new"

    def test_failed_load_with_cancelled_readers_is_retrieved(self):
        """No 'exception was never retrieved' report when every reader gave up."""
        cache = QueryCache()
        reports = []

        async def scenario():
            asyncio.get_running_loop().set_exception_handler(lambda loop, ctx: reports.append(ctx["message"]))
            gate = asyncio.Event()

            async def loader():
                await gate.wait()
                raise RuntimeError("boom")

            reader = asyncio.ensure_future(cache.get(("k",), loader))
            await asyncio.sleep(0)
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
            del reader
            gate.set()
            for _ in range(3):
                await asyncio.sleep(0)
            gc.collect()

        asyncio.run(scenario())
        assert not [m for m in reports if "never retrieved" in m]
