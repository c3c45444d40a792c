"""
流动性过滤与成交量/市值区间测试。

Covers:
  - tier_for_cap：五档半开区间划分与 10M 下限
  - is_illiquid：档位边界处的流动性下限
  - passes_liquidity_gate：稳定币、过小市值、流动性不足、非有限值
  - check_vol_cap_range：健康区间判断与空结果
"""

import math

import pytest

from crypto_scanner.liquidity import (
    IN_RANGE,
    OUT_OF_RANGE,
    TIERS,
    check_vol_cap_range,
    format_vol_cap_comment,
    is_illiquid,
    is_stablecoin,
    passes_liquidity_gate,
    tier_for_cap,
)

from conftest import make_record


class TestTiers:
    def test_bands_partition_from_ten_million(self):
        assert TIERS[0].lower == 10_000_000
        for lower, upper in zip(TIERS, TIERS[1:]):
            assert lower.upper == upper.lower
        assert math.isinf(TIERS[-1].upper)

    @pytest.mark.parametrize(
        "cap, expected",
        [
            (10_000_000, "micro"),
            (29_999_999, "micro"),
            (30_000_000, "small"),
            (100_000_000, "mid"),
            (300_000_000, "upper"),
            (999_999_999, "upper"),
            (1_000_000_000, "large"),
            (500_000_000_000, "large"),
        ],
    )
    def test_tier_for_cap(self, cap, expected):
        assert tier_for_cap(cap).name == expected

    def test_below_ten_million_is_out_of_scope(self):
        assert tier_for_cap(9_999_999) is None


class TestIsIlliquid:
    def test_thirty_million_boundary_uses_upper_tier_floor(self):
        cap = 30_000_000
        assert not is_illiquid(0.0035 * cap, cap)

    def test_just_below_thirty_million_uses_lower_tier_floor(self):
        cap = 29_999_999
        assert is_illiquid(0.0035 * cap, cap)

    def test_large_cap_floor(self):
        cap = 5_000_000_000
        assert not is_illiquid(0.0006 * cap, cap)
        assert is_illiquid(0.0004 * cap, cap)

    def test_cap_below_minimum_is_illiquid(self):
        assert is_illiquid(1_000_000, 5_000_000)

    @pytest.mark.parametrize(
        "cap, floor",
        [
            (20_000_000, 0.005),
            (50_000_000, 0.003),
            (200_000_000, 0.002),
            (500_000_000, 0.001),
            (2_000_000_000, 0.0005),
        ],
    )
    def test_floor_per_tier(self, cap, floor):
        assert not is_illiquid(floor * 1.1 * cap, cap)
        assert is_illiquid(floor * 0.9 * cap, cap)

    def test_mid_tier_floor_applies_to_whole_band(self):
        # 100M–300M 整段使用 0.002，而不是 1B 以下的 0.001
        cap = 200_000_000
        assert is_illiquid(0.0015 * cap, cap)
        assert not is_illiquid(0.0025 * cap, cap)

    @pytest.mark.parametrize(
        "volume, cap",
        [(1.0, math.nan), (1.0, math.inf), (math.nan, 50_000_000), (math.inf, 50_000_000)],
    )
    def test_non_finite_is_illiquid(self, volume, cap):
        assert is_illiquid(volume, cap)


class TestLiquidityGate:
    def test_liquid_instrument_passes(self):
        assert passes_liquidity_gate(make_record())

    def test_stablecoin_rejected(self):
        assert is_stablecoin("usdc")
        assert not passes_liquidity_gate(make_record(symbol="USDC", name="USD Coin"))

    def test_small_cap_rejected(self):
        assert not passes_liquidity_gate(make_record(market_cap=9_000_000, volume_24h=900_000))

    def test_illiquid_rejected(self):
        assert not passes_liquidity_gate(make_record(market_cap=50_000_000, volume_24h=10_000))

    def test_non_finite_rejected(self):
        assert not passes_liquidity_gate(make_record(market_cap=float("nan")))


class TestVolCapRange:
    def test_in_range_for_small_cap(self):
        result = check_vol_cap_range(2_000_000, 50_000_000)
        assert result["status"] == IN_RANGE
        assert result["min"] == 0.03716
        assert result["max"] == 0.08656
        assert result["ratio"] == pytest.approx(0.04)

    def test_out_of_range_for_large_cap(self):
        result = check_vol_cap_range(20_000_000, 2_000_000_000)
        assert result["status"] == OUT_OF_RANGE
        assert result["tier"] == "large"

    def test_caps_below_thirty_million_use_first_tier(self):
        assert check_vol_cap_range(500_000, 5_000_000)["tier"] == "micro"

    @pytest.mark.parametrize(
        "volume, cap",
        [
            (None, 50_000_000),
            (1_000_000, None),
            (float("nan"), 50_000_000),
            (1_000_000, float("inf")),
            (1_000_000, 0),
            ("100", 50_000_000),
        ],
    )
    def test_invalid_inputs_give_empty_result(self, volume, cap):
        assert check_vol_cap_range(volume, cap) == {}

    def test_comment_formatting(self):
        comment = format_vol_cap_comment(check_vol_cap_range(2_000_000, 50_000_000))
        assert comment == "in range (0.03716 - 0.08656)"
        assert format_vol_cap_comment({}) == ""
