from query_cache import CacheKey, QueryCache
from scheduler import SchedulerManager


def test_sweep_removes_only_expired_entries() -> None:
    now = [0.0]
    cache = QueryCache(clock=lambda: now[0])
    stale_list, stale_total = CacheKey.pair("food", 1, 2024)
    fresh_list, _ = CacheKey.pair("food", 2, 2024)
    cache.set(stale_list, (), ttl=10)
    cache.set(stale_total, 0, ttl=10)
    cache.set(fresh_list, (), ttl=1000)

    now[0] = 500
    manager = SchedulerManager(cache)

    assert manager._sweep_cache("test") == 2
    assert len(cache) == 1
    assert cache.get(fresh_list)[1] is True


def test_start_registers_sweep_job_and_stop_shuts_down() -> None:
    manager = SchedulerManager(QueryCache())
    manager.start()
    try:
        job = manager.scheduler.get_job("query_cache_sweep")
        assert job is not None
        assert manager.scheduler.running
    finally:
        manager.stop()
    assert not manager.scheduler.running
