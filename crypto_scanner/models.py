"""
数据模型。

一次扫描周期内所有记录都是不可变快照：扫描结束即被下一次全量扫描整体替换，
不做增量更新。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

UNAVAILABLE = "N/A"

TABLE_HEADER = [
    "Name",
    "Symbol",
    "Futures Symbol",
    "Base Coin",
    "Source Price",
    "Futures Price",
    "Volume24h",
    "MarketCap",
    "Vol/Cap Ratio",
    "Availability",
    "AccumulationFlag",
    "PatternRemark",
    "VolCapComment",
]

VOLATILITY_HEADER = ["Volatility%", "VolatilityScore", "VolatilityRemark"]


@dataclass(frozen=True)
class MarketRecord:
    symbol: str
    name: str
    price: float
    volume_24h: float
    market_cap: float
    pct_change_24h: float
    pct_change_7d: float
    pct_change_30d: float

    @property
    def vol_cap_ratio(self) -> Optional[float]:
        if not self.market_cap:
            return None
        return self.volume_24h / self.market_cap


@dataclass(frozen=True)
class FuturesInstrument:
    raw_symbol: str
    base_coin: str
    quote_coin: str
    last_price: float


@dataclass(frozen=True)
class MatchResult:
    available: bool
    futures_symbol: str = UNAVAILABLE
    price: Union[float, str] = UNAVAILABLE
    divisor: int = 1
    base_coin: str = UNAVAILABLE

    @classmethod
    def unavailable(cls) -> "MatchResult":
        return cls(available=False)


@dataclass(frozen=True)
class Tier:
    """市值分档：[lower, upper) 半开区间，附带流动性下限与健康的成交量/市值区间。"""

    name: str
    label: str
    lower: float
    upper: float
    illiquidity_floor: float
    vol_cap_min: float
    vol_cap_max: float

    def contains(self, market_cap: float) -> bool:
        return self.lower <= market_cap < self.upper


@dataclass(frozen=True)
class ClassifiedInstrument:
    record: MarketRecord
    match: MatchResult
    tier: Tier
    is_accumulating: bool
    pattern: Optional[str]
    pattern_remark: str
    vol_cap_status: str

    def to_row(self) -> List[Any]:
        """按 TABLE_HEADER 的列顺序输出一行。"""
        record = self.record
        ratio = record.vol_cap_ratio
        return [
            record.name,
            record.symbol,
            self.match.futures_symbol,
            self.match.base_coin,
            record.price,
            self.match.price,
            record.volume_24h,
            record.market_cap,
            round(ratio, 6) if ratio is not None else "",
            "Available" if self.match.available else "Not Available",
            "Yes" if self.is_accumulating else "No",
            self.pattern_remark,
            self.vol_cap_status,
        ]


@dataclass(frozen=True)
class VolatilityRecord:
    symbol: str
    pct_volatility: float
    z_score: float
    remark: str


@dataclass(frozen=True)
class CandleSeries:
    """单个合约的日线序列，按时间正序（最旧的在前）。"""

    open: List[float] = field(default_factory=list)
    high: List[float] = field(default_factory=list)
    low: List[float] = field(default_factory=list)
    close: List[float] = field(default_factory=list)
    volume: List[float] = field(default_factory=list)
    time: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        lengths = {
            len(self.open),
            len(self.high),
            len(self.low),
            len(self.close),
            len(self.volume),
            len(self.time),
        }
        if len(lengths) != 1:
            raise ValueError("CandleSeries 各列长度不一致")

    def __len__(self) -> int:
        return len(self.close)

    def to_dict(self) -> Dict[str, List[Any]]:
        return {
            "open": list(self.open),
            "high": list(self.high),
            "low": list(self.low),
            "close": list(self.close),
            "volume": list(self.volume),
            "time": list(self.time),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, List[Any]]) -> "CandleSeries":
        return cls(
            open=list(data["open"]),
            high=list(data["high"]),
            low=list(data["low"]),
            close=list(data["close"]),
            volume=list(data["volume"]),
            time=list(data["time"]),
        )


NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETE = "complete"


@dataclass(frozen=True)
class ListingState:
    status: str
    cursor: int
