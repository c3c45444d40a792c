import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from .config import STORE_DIR, STORE_MAX_VALUE_SIZE
from .exceptions import ValueSizeError

logger = logging.getLogger(__name__)


def save_json(data: Any, output_path: Path) -> None:
    """保存数据为 JSON 文件（UTF-8，保留非 ASCII 字符）。"""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def load_json(path: Path) -> Optional[Any]:
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as fp:
        return json.load(fp)


class KVStore(ABC):
    """
    键值存储接口：按字符串键读写字节，单个值有硬性大小上限。

    分块缓存与分页游标都建立在这个接口之上。
    """

    max_value_size: int

    @abstractmethod
    def read(self, key: str) -> Optional[bytes]:
        """读取键对应的值，不存在时返回 None。"""

    @abstractmethod
    def write(self, key: str, value: bytes) -> None:
        """写入键值，超过 max_value_size 时抛出 ValueSizeError。"""

    @abstractmethod
    def delete(self, key: str) -> None:
        """删除键，键不存在时静默返回。"""

    def _check_size(self, key: str, value: bytes) -> None:
        if len(value) > self.max_value_size:
            raise ValueSizeError(
                f"键 {key} 的值大小 {len(value)} 字节超过上限 {self.max_value_size} 字节"
            )


class MemoryKVStore(KVStore):
    def __init__(self, max_value_size: int = STORE_MAX_VALUE_SIZE) -> None:
        self.max_value_size = max_value_size
        self._data: Dict[str, bytes] = {}

    def read(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def write(self, key: str, value: bytes) -> None:
        self._check_size(key, value)
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return sorted(self._data)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileKVStore(KVStore):
    """每个键对应目录下的一个文件。"""

    def __init__(
        self,
        directory: Path = STORE_DIR,
        max_value_size: int = STORE_MAX_VALUE_SIZE,
    ) -> None:
        self.directory = Path(directory)
        self.max_value_size = max_value_size

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"非法的存储键：{key!r}")
        return self.directory / key

    def read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def write(self, key: str, value: bytes) -> None:
        self._check_size(key, value)
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # 先写临时文件再替换，单个键的写入不会被读到一半
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(value)
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("删除的键 %s 不存在", key)
