"""
分块 K 线缓存。

存储后端的单键大小有硬上限（如 500KB），而全部合约的日线序列序列化后远超该上限。
写入时把 JSON 按字节切成不超过 chunk_size 的若干块，依次存为 base_0..base_{n-1}，
再写入块数 base_count；读取时按序拼接后反序列化。

跨键写入不是原子的：读写并发时读者可能看到新旧混杂的块。写入时额外保存整段
载荷的 SHA-256（base_digest），读取时校验不通过则按空缓存处理，而不是返回损坏数据。
只支持整体替换，不支持局部合并。
"""
import hashlib
import json
import logging
from typing import Dict, List

from crypto_scanner.config import CANDLE_CACHE_KEY, CANDLE_CHUNK_SIZE
from crypto_scanner.models import CandleSeries
from crypto_scanner.storage import KVStore

logger = logging.getLogger(__name__)


def split_chunks(payload: bytes, chunk_size: int) -> List[bytes]:
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    return [payload[i : i + chunk_size] for i in range(0, len(payload), chunk_size)]


class ChunkedCandleCache:
    def __init__(
        self,
        store: KVStore,
        base_key: str = CANDLE_CACHE_KEY,
        chunk_size: int = CANDLE_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if chunk_size > store.max_value_size:
            raise ValueError(
                f"chunk_size {chunk_size} 超过存储单键上限 {store.max_value_size}"
            )
        self.store = store
        self.base_key = base_key
        self.chunk_size = chunk_size

    @property
    def count_key(self) -> str:
        return f"{self.base_key}_count"

    @property
    def digest_key(self) -> str:
        return f"{self.base_key}_digest"

    def chunk_key(self, index: int) -> str:
        return f"{self.base_key}_{index}"

    def stored_chunk_count(self) -> int:
        raw = self.store.read(self.count_key)
        if raw is None:
            return 0
        try:
            return int(raw.decode("utf-8"))
        except ValueError:
            logger.warning("缓存块数 %r 无法解析，按 0 处理", raw)
            return 0

    def write(self, series_map: Dict[str, CandleSeries]) -> int:
        """整体替换缓存内容，返回写入的块数。"""
        payload = json.dumps(
            {symbol: series.to_dict() for symbol, series in series_map.items()},
            separators=(",", ":"),
        ).encode("utf-8")
        chunks = split_chunks(payload, self.chunk_size)

        self.clear()

        for index, chunk in enumerate(chunks):
            self.store.write(self.chunk_key(index), chunk)
        self.store.write(self.digest_key, hashlib.sha256(payload).hexdigest().encode("ascii"))
        self.store.write(self.count_key, str(len(chunks)).encode("utf-8"))

        logger.info(
            "K 线缓存已写入：%d 个合约，%d 字节，%d 块",
            len(series_map),
            len(payload),
            len(chunks),
        )
        return len(chunks)

    def read(self) -> Dict[str, CandleSeries]:
        count = self.stored_chunk_count()
        if count == 0:
            return {}

        parts: List[bytes] = []
        for index in range(count):
            chunk = self.store.read(self.chunk_key(index))
            if chunk is None:
                logger.warning("缓存块 %s 缺失，可能正在被改写", self.chunk_key(index))
                return {}
            parts.append(chunk)
        payload = b"".join(parts)

        # 写入时先删校验值，缺失说明正在改写
        digest = self.store.read(self.digest_key)
        if digest is None:
            logger.warning("缓存校验值缺失（可能正在被改写），按空缓存处理")
            return {}
        if hashlib.sha256(payload).hexdigest() != digest.decode("ascii", errors="replace"):
            logger.warning("缓存校验失败（读到了写入中的数据），按空缓存处理")
            return {}

        try:
            data = json.loads(payload.decode("utf-8"))
            return {symbol: CandleSeries.from_dict(series) for symbol, series in data.items()}
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("缓存内容无法解析，按空缓存处理：%s", exc)
            return {}

    def clear(self) -> None:
        """按已存块数删除全部旧块及元数据。"""
        count = self.stored_chunk_count()
        self.store.delete(self.count_key)
        self.store.delete(self.digest_key)
        for index in range(count):
            self.store.delete(self.chunk_key(index))
