"""
可续跑的分页游标。

长时间分页抓取会被宿主的时间预算打断：每次调用从游标处继续，预算将尽时
把当前页写回游标后退出，等待下一次调度。游标值为 总页数 + 1 表示已完成。
"""
import logging
import time
from typing import Callable

from crypto_scanner.models import COMPLETE, IN_PROGRESS, NOT_STARTED, ListingState
from crypto_scanner.storage import KVStore

logger = logging.getLogger(__name__)

FIRST_PAGE = 1


class ResumableCursor:
    def __init__(self, store: KVStore, key: str) -> None:
        self.store = store
        self.key = key

    def read(self) -> int:
        raw = self.store.read(self.key)
        if raw is None:
            return FIRST_PAGE
        try:
            return int(raw.decode("utf-8"))
        except ValueError:
            logger.warning("游标 %s 的值 %r 无法解析，从第一页开始", self.key, raw)
            return FIRST_PAGE

    def save(self, page: int) -> None:
        """保存当前页；同一轮运行内游标只能前进，回退需先 reset。"""
        if page < FIRST_PAGE:
            raise ValueError(f"page must be >= {FIRST_PAGE}")
        current = self.read()
        if self.store.read(self.key) is not None and page < current:
            raise ValueError(f"游标不能回退：当前 {current}，试图写入 {page}")
        self.store.write(self.key, str(page).encode("utf-8"))

    def state(self, total_pages: int) -> ListingState:
        """游标不存在为未开始，超过总页数为已完成，其余为进行中。"""
        if self.store.read(self.key) is None:
            return ListingState(NOT_STARTED, FIRST_PAGE)
        page = self.read()
        if page > total_pages:
            return ListingState(COMPLETE, page)
        return ListingState(IN_PROGRESS, page)

    def reset(self) -> None:
        self.store.delete(self.key)
        logger.info("游标 %s 已重置", self.key)


class TimeBudget:
    """调用方注入的时间预算，替代在循环里直接读墙钟。"""

    def __init__(
        self,
        seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.seconds = seconds
        self._clock = clock
        self._started = clock()

    def elapsed(self) -> float:
        return self._clock() - self._started

    def exhausted(self) -> bool:
        return self.elapsed() >= self.seconds
