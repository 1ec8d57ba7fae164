"""测试公用的内存 Redis 替身与时钟。"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List

import pytest
import redis

from chat_core.config.settings import ChatConfig
from chat_core.infrastructure.storage.redis_store import RedisConversationStore


def _decode(value):
    # 与 decode_responses=True 一致：bytes 按 UTF-8 严格解码
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class FakePipeline:
    """缓存命令，execute 时一次性应用；失败时什么也不写。"""

    def __init__(self, backend: "FakeRedis"):
        self._backend = backend
        self._ops = []

    def __enter__(self):
        return self

    def __exit__(self, *a):
        self._ops = []
        return False

    def __getattr__(self, name):
        def queue(*args):
            self._ops.append((name, args))
            return self

        return queue

    def execute(self):
        if self._backend.fail_exec:
            self._ops = []
            raise redis.ResponseError("EXECABORT Transaction discarded")
        results = [getattr(self._backend, name)(*args) for name, args in self._ops]
        self._ops = []
        return results


class FakeRedis:
    """只实现存储层用到的命令，decode_responses=True 语义。"""

    def __init__(self):
        self.strings: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.fail_exec = False
        self.fail_reads = False

    def _check_read(self):
        if self.fail_reads:
            raise redis.ConnectionError("connection refused")

    def ping(self):
        return True

    def get(self, key):
        self._check_read()
        return _decode(self.strings.get(key))

    def set(self, key, value):
        self.strings[key] = value
        return True

    def lrange(self, key, start, end):
        self._check_read()
        items = self.lists.get(key, [])
        stop = len(items) if end == -1 else end + 1
        return [_decode(v) for v in items[start:stop]]

    def rpush(self, key, *values):
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    def lpush(self, key, *values):
        items = self.lists.setdefault(key, [])
        for v in values:
            items.insert(0, v)
        return len(items)

    def lrem(self, key, count, value):
        items = self.lists.get(key, [])
        kept = [v for v in items if v != value]
        removed = len(items) - len(kept)
        self.lists[key] = kept
        return removed

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class TickingClock:
    """每次调用前进一秒，保证时间戳严格递增。"""

    def __init__(self):
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(fake_redis, clock):
    return RedisConversationStore(fake_redis, ChatConfig(allowed_models=("a", "b")), now=clock)
