"""
波动率估计与评分模块

1. 用最近两根日线估计时间加权的百分比波动率；
2. 用市值的对数回归基线把波动率换算成 Z 分数，并给出定性评价。

当天的日线尚未走完，直接对两根 K 线求标准差会在 UTC 日初过度放大当天的影响，
因此按当天已过去的时间比例给两根 K 线加权。
"""
import math
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from crypto_scanner.models import CandleSeries, VolatilityRecord

SECONDS_PER_DAY = 86400

IDEAL = "Ideal"
SLIGHTLY_HOT = "Slightly Hot"
HIGH_BREAKOUT_RISK = "High / Breakout Risk"
SLIGHTLY_COLD = "Slightly Cold"
TOO_COLD = "Too Cold"


@dataclass(frozen=True)
class VolatilityBaseline:
    """
    log(波动率%) 对 log(市值) 的回归基线。

    系数由历史数据离线拟合，需要定期重新校准，因此作为配置传入而不是写死。
    """

    slope: float = 1.2
    intercept: float = -24.8
    stdev: float = 0.55

    @classmethod
    def from_env(cls) -> "VolatilityBaseline":
        default = cls()
        return cls(
            slope=float(os.getenv("VOL_BASELINE_SLOPE", default.slope)),
            intercept=float(os.getenv("VOL_BASELINE_INTERCEPT", default.intercept)),
            stdev=float(os.getenv("VOL_BASELINE_STDEV", default.stdev)),
        )

    def expected_log_volatility(self, market_cap: float) -> float:
        return self.slope * math.log(market_cap) + self.intercept


def utc_day_fraction(now: Optional[datetime] = None) -> float:
    """当天 UTC 已经过去的时间占全天的比例。"""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return (now - midnight).total_seconds() / SECONDS_PER_DAY


def estimate_volatility(
    series: CandleSeries, now: Optional[datetime] = None
) -> Optional[float]:
    """
    计算时间加权的百分比波动率。

    Args:
        series: 按时间正序的日线，最后一根为当天（可能未收盘）
        now: 计算时间，默认当前 UTC 时间

    Returns:
        百分比波动率；不足两根 K 线或数据异常时返回 None
    """
    if len(series) < 2:
        return None

    y_bar = (series.open[-2], series.high[-2], series.low[-2], series.close[-2])
    t_bar = (series.open[-1], series.high[-1], series.low[-1], series.close[-1])
    today_close = series.close[-1]

    values = y_bar + t_bar
    if not all(math.isfinite(v) for v in values) or today_close <= 0:
        return None

    y_mean = sum(y_bar) / 4
    t_mean = sum(t_bar) / 4
    g_mean = (y_mean + t_mean) / 2

    t_weight = utc_day_fraction(now)
    y_weight = 1 - t_weight

    variance = (y_mean - g_mean) ** 2 * y_weight + (t_mean - g_mean) ** 2 * t_weight
    std_dev = math.sqrt(variance)
    return 100 * std_dev / today_close


def score_volatility(
    pct_volatility: float,
    market_cap: float,
    baseline: Optional[VolatilityBaseline] = None,
) -> Optional[float]:
    """把波动率换算为相对市值基线的 Z 分数；对数无定义时返回 None。"""
    if baseline is None:
        baseline = VolatilityBaseline()
    if not _positive_finite(pct_volatility) or not _positive_finite(market_cap):
        return None
    if baseline.stdev <= 0:
        return None
    expected = baseline.expected_log_volatility(market_cap)
    return (math.log(pct_volatility) - expected) / baseline.stdev


def describe_volatility(z_score: float) -> str:
    if z_score > 1.2:
        return HIGH_BREAKOUT_RISK
    if z_score > 0.5:
        return SLIGHTLY_HOT
    if z_score >= -0.5:
        return IDEAL
    if z_score >= -1.2:
        return SLIGHTLY_COLD
    return TOO_COLD


def build_volatility_record(
    symbol: str,
    series: CandleSeries,
    market_cap: float,
    baseline: Optional[VolatilityBaseline] = None,
    now: Optional[datetime] = None,
) -> Optional[VolatilityRecord]:
    """估计 + 评分；任一步无法计算时整体跳过。"""
    pct = estimate_volatility(series, now=now)
    if pct is None:
        return None
    z_score = score_volatility(pct, market_cap, baseline)
    if z_score is None:
        return None
    return VolatilityRecord(
        symbol=symbol,
        pct_volatility=pct,
        z_score=z_score,
        remark=describe_volatility(z_score),
    )


def _positive_finite(value: float) -> bool:
    try:
        return math.isfinite(value) and value > 0
    except TypeError:
        return False
