import threading
import time
from typing import Callable, Dict, Iterable, Optional, Protocol, Tuple

from tuning_lab.core.config import settings


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimitStore(Protocol):
    """clientKey -> 上次请求时间 (epoch ms)"""

    def get(self, key: str) -> Optional[int]: ...

    def set(self, key: str, ts_ms: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def items(self) -> Iterable[Tuple[str, int]]: ...

    def __len__(self) -> int: ...


class InMemoryRateLimitStore:
    def __init__(self):
        self._data: Dict[str, int] = {}

    def get(self, key: str) -> Optional[int]:
        return self._data.get(key)

    def set(self, key: str, ts_ms: int) -> None:
        self._data[key] = ts_ms

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def items(self) -> Iterable[Tuple[str, int]]:
        # 拷贝一份，允许遍历时删除
        return list(self._data.items())

    def __len__(self) -> int:
        return len(self._data)


class RateLimiter:
    """
    按客户端限流：同一个 key 在冷却窗口内的第二次请求被拒绝。

    表超过阈值时顺手清掉过期条目，不需要后台清理任务。
    """

    def __init__(
            self,
            cooldown_ms: int = settings.RATE_LIMIT_COOLDOWN_MS,
            retention_ms: int = settings.RATE_LIMIT_RETENTION_MS,
            prune_threshold: int = settings.RATE_LIMIT_PRUNE_THRESHOLD,
            store: Optional[RateLimitStore] = None,
            clock: Callable[[], int] = _now_ms,
    ):
        self.cooldown_ms = cooldown_ms
        self.retention_ms = retention_ms
        self.prune_threshold = prune_threshold
        self.store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock
        self._lock = threading.Lock()

    def allow(self, client_key: str) -> bool:
        with self._lock:
            now = self._clock()
            last = self.store.get(client_key)
            if last is not None and now - last < self.cooldown_ms:
                return False

            self.store.set(client_key, now)
            if len(self.store) > self.prune_threshold:
                self._prune(now)
            return True

    def _prune(self, now: int) -> None:
        cutoff = now - self.retention_ms
        for key, ts in self.store.items():
            if ts < cutoff:
                self.store.delete(key)

    def __len__(self) -> int:
        return len(self.store)
