# tests/test_discovery_store.py

from discovery.discovery_store import DiscoveryStore
from discovery.models import InstanceKey


async def test_record_discovery_upserts(tmp_path):
    store = DiscoveryStore(str(tmp_path / "store" / "discovery.db"))
    await store.init_db()
    assert await store.count() == 0

    db1 = InstanceKey(hostname="db-1", port=3306)
    await store.record_discovery(db1)
    await store.record_discovery(InstanceKey(hostname="db-2", port=3306))
    await store.record_discovery(db1)

    instances = await store.get_instances()
    assert await store.count() == 2
    assert [(i.hostname, i.discover_count) for i in instances] == [("db-1", 2), ("db-2", 1)]
    assert instances[0].last_discovered_at is not None


async def test_count_without_table_is_zero(tmp_path):
    store = DiscoveryStore(str(tmp_path / "missing.db"))
    assert await store.count() == 0
