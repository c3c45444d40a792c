"""
吸筹形态分类。

两步判断：
1. 粗筛：24h / 7d / 30d 涨跌幅同时落在宽区间内才视为“吸筹中”；
2. 细分：按固定优先级依次匹配七种形态，每个区间按宽度动态放宽容差。

放宽后的区间彼此重叠，因此匹配顺序就是优先级，命中第一个即返回。
"""
from typing import Dict, Optional, Tuple

Range = Tuple[float, float]

ACCUMULATION_GATE: Dict[str, Range] = {
    "24h": (-6.0, 6.0),
    "7d": (-10.0, 10.0),
    "30d": (0.0, 25.0),
}

# (24h, 7d, 30d)，顺序即优先级
PATTERNS: Tuple[Tuple[str, Range, Range, Range], ...] = (
    ("strong", (0, 5), (0, 8), (10, 20)),
    ("quiet", (-5, 0), (0, 5), (10, 20)),
    ("hidden", (0, 5), (-5, 0), (5, 15)),
    ("early", (-5, 0), (-5, 0), (5, 15)),
    ("sideways", (0, 5), (0, 5), (0, 10)),
    ("pressure", (-3, 0), (-8, -2), (0, 10)),
    ("neutral", (-5, 5), (-8, 8), (0, 5)),
)

PATTERN_REMARKS = {
    "strong": "Strong Accumulation",
    "quiet": "Quiet Accumulation",
    "hidden": "Hidden Accumulation",
    "early": "Early Accumulation",
    "sideways": "Sideways Accumulation",
    "pressure": "Accumulation Under Pressure",
    "neutral": "Neutral Accumulation",
}
NO_PATTERN_REMARK = "No Clear Accumulation"

TOLERANCE_RATIO = 0.15
MIN_TOLERANCE = 1.0
MAX_TOLERANCE = 3.0


def apply_tolerance(lo: float, hi: float) -> Range:
    """按区间宽度的 15% 放宽两端，容差限制在 [1, 3]。"""
    tol = min(max(TOLERANCE_RATIO * (hi - lo), MIN_TOLERANCE), MAX_TOLERANCE)
    return lo - tol, hi + tol


def _within(value: float, bounds: Range) -> bool:
    return bounds[0] <= value <= bounds[1]


def is_accumulating(change_24h: float, change_7d: float, change_30d: float) -> bool:
    return (
        _within(change_24h, ACCUMULATION_GATE["24h"])
        and _within(change_7d, ACCUMULATION_GATE["7d"])
        and _within(change_30d, ACCUMULATION_GATE["30d"])
    )


def classify_pattern(
    change_24h: float, change_7d: float, change_30d: float
) -> Optional[str]:
    """返回第一个完全匹配的形态名；都不匹配时返回 None。"""
    for name, range_24h, range_7d, range_30d in PATTERNS:
        if (
            _within(change_24h, apply_tolerance(*range_24h))
            and _within(change_7d, apply_tolerance(*range_7d))
            and _within(change_30d, apply_tolerance(*range_30d))
        ):
            return name
    return None


def describe_pattern(pattern: Optional[str]) -> str:
    if pattern is None:
        return NO_PATTERN_REMARK
    return PATTERN_REMARKS[pattern]


def classify(
    change_24h: float, change_7d: float, change_30d: float
) -> Tuple[bool, Optional[str]]:
    """完整的两步分类：未通过粗筛时不做形态细分。"""
    if not is_accumulating(change_24h, change_7d, change_30d):
        return False, None
    return True, classify_pattern(change_24h, change_7d, change_30d)
