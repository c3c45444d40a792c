"""
表格输出。

每个市值档位一张表：首行表头，之后每个币种一行。后续的波动率计算只会在右侧追加列，
重复运行时覆盖同名列的值，从不删除已有列。
"""
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from crypto_scanner.config import TABLES_DIR
from crypto_scanner.storage import load_json, save_json

logger = logging.getLogger(__name__)

Table = Dict[str, List[Any]]


class TabularSink(ABC):
    @abstractmethod
    def load(self, sheet: str) -> Optional[Table]:
        """返回 {"header": [...], "rows": [[...], ...]}，表不存在时返回 None。"""

    @abstractmethod
    def save(self, sheet: str, table: Table) -> None:
        ...

    def read_table(self, sheet: str) -> Optional[Tuple[List[str], List[List[Any]]]]:
        table = self.load(sheet)
        if table is None:
            return None
        return list(table["header"]), [list(row) for row in table["rows"]]

    def write_table(self, sheet: str, header: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        """整表替换。"""
        self.save(sheet, {"header": list(header), "rows": [list(row) for row in rows]})
        logger.info("表 %s 已写入 %d 行", sheet, len(rows))

    def append_rows(self, sheet: str, header: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        table = self.load(sheet) or {"header": list(header), "rows": []}
        table["rows"].extend(list(row) for row in rows)
        self.save(sheet, table)

    def append_columns(
        self,
        sheet: str,
        key_column: str,
        headers: Sequence[str],
        values_by_key: Dict[str, Sequence[Any]],
    ) -> int:
        """
        按 key_column 把新列的值写入已有行，返回更新的行数。

        新列追加在表头末尾；同名列已存在时原位覆盖。没有对应值的行保留原值
        （新列则留空）。
        """
        table = self.load(sheet)
        if table is None:
            logger.warning("表 %s 不存在，跳过追加列", sheet)
            return 0

        header: List[str] = table["header"]
        if key_column not in header:
            raise KeyError(f"表 {sheet} 中没有列 {key_column}")
        key_index = header.index(key_column)

        positions = []
        for name in headers:
            if name not in header:
                header.append(name)
            positions.append(header.index(name))

        updated = 0
        for row in table["rows"]:
            if len(row) < len(header):
                row.extend([""] * (len(header) - len(row)))
            values = values_by_key.get(str(row[key_index]))
            if values is None:
                continue
            for position, value in zip(positions, values):
                row[position] = value
            updated += 1

        self.save(sheet, table)
        logger.info("表 %s 追加列 %s，更新 %d 行", sheet, ", ".join(headers), updated)
        return updated


class MemoryTableSink(TabularSink):
    def __init__(self) -> None:
        self.tables: Dict[str, Table] = {}

    def load(self, sheet: str) -> Optional[Table]:
        table = self.tables.get(sheet)
        if table is None:
            return None
        return {"header": list(table["header"]), "rows": [list(row) for row in table["rows"]]}

    def save(self, sheet: str, table: Table) -> None:
        self.tables[sheet] = table


class JsonTableSink(TabularSink):
    """每张表保存为 {directory}/{sheet}.json。"""

    def __init__(self, directory: Path = TABLES_DIR) -> None:
        self.directory = Path(directory)

    def _path(self, sheet: str) -> Path:
        token = re.sub(r"[^A-Za-z0-9_-]+", "_", sheet.strip()).strip("_").lower()
        return self.directory / f"{token}.json"

    def load(self, sheet: str) -> Optional[Table]:
        return load_json(self._path(sheet))

    def save(self, sheet: str, table: Table) -> None:
        save_json(table, self._path(sheet))
