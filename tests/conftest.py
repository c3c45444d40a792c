"""
测试共用的 fixture 与数据构造函数。

所有测试都不访问网络：requests 用 unittest.mock 打桩，httpx 用 MockTransport。
"""

import pytest

from crypto_scanner import rate_limiter
from crypto_scanner.models import CandleSeries, FuturesInstrument, MarketRecord
from crypto_scanner.sink import MemoryTableSink
from crypto_scanner.storage import MemoryKVStore


@pytest.fixture(autouse=True)
def _no_pacing(monkeypatch):
    """测试中取消各数据源的调用间隔。"""
    for pacer in (rate_limiter.cmc_pacer, rate_limiter.bybit_pacer, rate_limiter.coingecko_pacer):
        monkeypatch.setattr(pacer, "_min_interval", 0.0)


@pytest.fixture
def store():
    return MemoryKVStore(max_value_size=1_000)


@pytest.fixture
def sink():
    return MemoryTableSink()


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_record(
    symbol="ABC",
    name="Abc Network",
    price=1.0,
    volume_24h=2_000_000.0,
    market_cap=50_000_000.0,
    change_24h=2.0,
    change_7d=4.0,
    change_30d=15.0,
) -> MarketRecord:
    return MarketRecord(
        symbol=symbol,
        name=name,
        price=price,
        volume_24h=volume_24h,
        market_cap=market_cap,
        pct_change_24h=change_24h,
        pct_change_7d=change_7d,
        pct_change_30d=change_30d,
    )


def make_instrument(raw_symbol, base_coin, last_price, quote_coin="USDT") -> FuturesInstrument:
    return FuturesInstrument(
        raw_symbol=raw_symbol,
        base_coin=base_coin,
        quote_coin=quote_coin,
        last_price=last_price,
    )


def make_series(n_bars: int = 10, start_price: float = 100.0, step: float = 1.5) -> CandleSeries:
    """构造 n_bars 根按时间正序的日线。"""
    closes = [round(start_price + i * step, 4) for i in range(n_bars)]
    return CandleSeries(
        open=[round(c - step / 2, 4) for c in closes],
        high=[round(c + 2.25, 4) for c in closes],
        low=[round(c - 2.75, 4) for c in closes],
        close=closes,
        volume=[1000.0 + 37.5 * i for i in range(n_bars)],
        time=[1_700_006_400_000 + i * 86_400_000 for i in range(n_bars)],
    )
