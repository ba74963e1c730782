import threading

from helpscout_api_client import MemoryTokenStorage, RedisTokenStorage


class FakeRedis:
    """Stores values as bytes, like redis-py without decode_responses."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value.encode("utf-8")


def test_memory_storage_starts_empty():
    assert MemoryTokenStorage().get() is None


def test_memory_storage_set_and_get():
    storage = MemoryTokenStorage()
    storage.set("abc")

    assert storage.get() == "abc"
    assert storage.get() == "abc"


def test_memory_storage_overwrites():
    storage = MemoryTokenStorage("old")
    storage.set("new")

    assert storage.get() == "new"


def test_memory_storage_concurrent_access():
    storage = MemoryTokenStorage("initial")
    seen = []

    def worker(n):
        for i in range(200):
            storage.set(f"token-{n}-{i}")
            seen.append(storage.get())

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert None not in seen
    assert all(token.startswith("token-") for token in seen)


def test_redis_storage_roundtrip():
    db = FakeRedis()
    storage = RedisTokenStorage(db)

    assert storage.get() is None
    storage.set("abc")

    assert db.data == {"helpscout-client-token": b"abc"}
    assert storage.get() == "abc"


def test_redis_storage_custom_key():
    db = FakeRedis()
    RedisTokenStorage(db, key="tenant-1-token").set("abc")

    assert "tenant-1-token" in db.data
