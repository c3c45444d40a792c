from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import requests

from crypto_scanner.config import BYBIT_BASE_URL, CANDLE_LOOKBACK_DAYS
from crypto_scanner.exceptions import SourceError
from crypto_scanner.matcher import build_futures_catalog
from crypto_scanner.models import CandleSeries, FuturesInstrument
from crypto_scanner.rate_limiter import bybit_pacer


def _unwrap(result: Dict[str, Any]) -> Dict[str, Any]:
    if result.get("retCode") != 0:
        raise SourceError(f"Bybit API 错误：{result.get('retMsg', '未知错误')}")
    return result.get("result") or {}


def list_bybit_instruments(
    category: str = "linear",
    status: str = "Trading",
) -> List[Dict[str, Any]]:
    """列出 Bybit 指定品类的全部合约详情（自动翻页）。"""
    instruments: List[Dict[str, Any]] = []
    cursor = ""
    while True:
        params = {"category": category, "limit": 1000}
        if cursor:
            params["cursor"] = cursor
        with bybit_pacer:
            response = requests.get(
                f"{BYBIT_BASE_URL}/v5/market/instruments-info",
                params=params,
                timeout=30,
            )
        response.raise_for_status()
        payload = _unwrap(response.json())

        for item in payload.get("list", []):
            if status and item.get("status") != status:
                continue
            instruments.append(item)

        cursor = payload.get("nextPageCursor") or ""
        if not cursor:
            break
    return instruments


def fetch_bybit_tickers(category: str = "linear") -> List[Dict[str, Any]]:
    with bybit_pacer:
        response = requests.get(
            f"{BYBIT_BASE_URL}/v5/market/tickers",
            params={"category": category},
            timeout=30,
        )
    response.raise_for_status()
    tickers = _unwrap(response.json()).get("list", [])
    if not isinstance(tickers, list):
        raise SourceError(f"API 返回格式错误：期望列表，得到 {type(tickers)}")
    return tickers


def fetch_bybit_futures_catalog(category: str = "linear") -> List[FuturesInstrument]:
    """合约详情与行情按 symbol 拼接成合约目录。"""
    return build_futures_catalog(
        list_bybit_instruments(category=category),
        fetch_bybit_tickers(category=category),
    )


def fetch_bybit_daily_candles(
    client: httpx.Client,
    symbol: str,
    days: int = CANDLE_LOOKBACK_DAYS,
    now: Optional[datetime] = None,
    category: str = "linear",
) -> CandleSeries:
    """拉取最近 days 天的日线，返回按时间正序的 CandleSeries。"""
    end = now or datetime.now(timezone.utc)
    start = end - timedelta(days=days)
    with bybit_pacer:
        response = client.get(
            f"{BYBIT_BASE_URL}/v5/market/kline",
            params={
                "category": category,
                "symbol": symbol.upper(),
                "interval": "D",
                "start": int(start.timestamp() * 1000),
                "end": int(end.timestamp() * 1000),
                "limit": days + 1,
            },
            timeout=30,
        )
    response.raise_for_status()
    raw_klines = _unwrap(response.json()).get("list", [])

    if not isinstance(raw_klines, list):
        raise SourceError(f"API 返回格式错误：期望列表，得到 {type(raw_klines)}")

    rows = []
    for entry in raw_klines:
        if not isinstance(entry, list) or len(entry) < 6:
            raise SourceError(f"K 线数据格式错误：{entry}")
        rows.append(entry)

    # Bybit 返回时间倒序（最新的在前），统一转为正序
    rows.sort(key=lambda entry: int(entry[0]))

    return CandleSeries(
        open=[float(entry[1]) for entry in rows],
        high=[float(entry[2]) for entry in rows],
        low=[float(entry[3]) for entry in rows],
        close=[float(entry[4]) for entry in rows],
        volume=[float(entry[5]) for entry in rows],
        time=[int(entry[0]) for entry in rows],
    )
