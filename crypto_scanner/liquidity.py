"""
流动性过滤与成交量/市值健康区间检查。

成交量相对市值过低的币种往往是刷量或控盘的迹象，而不是真实的吸筹，
这类币种会污染形态分类和波动率回归基线，因此在分类前剔除。
"""
import math
from typing import Any, Dict, FrozenSet, Optional

from crypto_scanner.config import STABLECOINS
from crypto_scanner.models import MarketRecord, Tier

MIN_MARKET_CAP = 10_000_000

# 五档市值区间划分 [10M, ∞)；健康区间为历史数据统计得到的经验值
TIERS = (
    Tier("micro", "Micro Cap", 10_000_000, 30_000_000, 0.005, 0.04512, 0.12473),
    Tier("small", "Small Cap", 30_000_000, 100_000_000, 0.003, 0.03716, 0.08656),
    Tier("mid", "Mid Cap", 100_000_000, 300_000_000, 0.002, 0.02893, 0.06724),
    Tier("upper", "Upper Cap", 300_000_000, 1_000_000_000, 0.001, 0.02145, 0.05318),
    Tier("large", "Large Cap", 1_000_000_000, math.inf, 0.0005, 0.01287, 0.03942),
)

IN_RANGE = "in range"
OUT_OF_RANGE = "out of range"


def tier_for_cap(market_cap: float) -> Optional[Tier]:
    """返回市值所在档位；低于 10M 不在范围内，返回 None。"""
    for tier in TIERS:
        if tier.contains(market_cap):
            return tier
    return None


def is_stablecoin(symbol: str, stablecoins: FrozenSet[str] = STABLECOINS) -> bool:
    return symbol.strip().upper() in stablecoins


def is_illiquid(volume_24h: float, market_cap: float) -> bool:
    """成交量/市值低于所在档位的流动性下限即视为流动性不足；非有限值一律视为不足。"""
    if not _is_finite(volume_24h) or not _is_finite(market_cap):
        return True
    if market_cap < MIN_MARKET_CAP:
        return True
    tier = tier_for_cap(market_cap)
    ratio = volume_24h / market_cap
    return ratio < tier.illiquidity_floor


def passes_liquidity_gate(
    record: MarketRecord,
    stablecoins: FrozenSet[str] = STABLECOINS,
) -> bool:
    if not _is_finite(record.market_cap) or not _is_finite(record.volume_24h):
        return False
    if record.market_cap < MIN_MARKET_CAP:
        return False
    if is_stablecoin(record.symbol, stablecoins):
        return False
    return not is_illiquid(record.volume_24h, record.market_cap)


def _vol_cap_tier(market_cap: float) -> Tier:
    # 低于 30M 的一律按最小档处理
    for tier in reversed(TIERS):
        if market_cap >= tier.lower:
            return tier
    return TIERS[0]


def check_vol_cap_range(volume_24h: Any, market_cap: Any) -> Dict[str, Any]:
    """
    对比成交量/市值与所在档位的健康区间。

    返回 status（in range / out of range）以及档位上下限，便于排查；
    输入缺失、非有限或市值非正时返回空字典。
    """
    if not _is_finite(volume_24h) or not _is_finite(market_cap) or market_cap <= 0:
        return {}

    tier = _vol_cap_tier(market_cap)
    ratio = volume_24h / market_cap
    in_range = tier.vol_cap_min <= ratio <= tier.vol_cap_max
    return {
        "status": IN_RANGE if in_range else OUT_OF_RANGE,
        "tier": tier.name,
        "min": tier.vol_cap_min,
        "max": tier.vol_cap_max,
        "ratio": ratio,
    }


def format_vol_cap_comment(result: Dict[str, Any]) -> str:
    if not result:
        return ""
    return f"{result['status']} ({result['min']:.5f} - {result['max']:.5f})"


def _is_finite(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
