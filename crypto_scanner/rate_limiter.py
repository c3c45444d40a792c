import time
from typing import Callable

from crypto_scanner.config import (
    BYBIT_REQUEST_DELAY,
    CMC_REQUEST_DELAY,
    COINGECKO_REQUEST_DELAY,
)


class RequestPacer:
    """同步限速器：保证两次调用之间至少间隔 min_interval 秒。

    所有调用都是串行阻塞的，这里只负责节奏控制，不保证正确性。
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_acquire = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    def wait(self) -> None:
        if self._min_interval <= 0:
            return

        now = self._clock()
        if self._last_acquire is not None:
            wait_for = self._min_interval - (now - self._last_acquire)
            if wait_for > 0:
                self._sleep(wait_for)
                now = self._clock()
        self._last_acquire = now

    def __enter__(self):
        self.wait()
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


cmc_pacer = RequestPacer(CMC_REQUEST_DELAY)
bybit_pacer = RequestPacer(BYBIT_REQUEST_DELAY)
coingecko_pacer = RequestPacer(COINGECKO_REQUEST_DELAY)
