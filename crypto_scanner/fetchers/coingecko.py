import os
from typing import Any, Dict, List

import httpx
import requests

from crypto_scanner.config import COINGECKO_BASE_URL, LISTING_PAGE_SIZE
from crypto_scanner.exceptions import SourceError
from crypto_scanner.rate_limiter import coingecko_pacer


def _headers() -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    api_key = os.getenv("COINGECKO_API_KEY", "").strip()
    if api_key:
        headers["x-cg-demo-api-key"] = api_key
    return headers


def fetch_coingecko_coins_page(
    page: int,
    per_page: int = LISTING_PAGE_SIZE,
) -> List[Dict[str, Any]]:
    """按市值排序拉取第 page 页币种概要（每页最多 100 个）。"""
    with coingecko_pacer:
        response = requests.get(
            f"{COINGECKO_BASE_URL}/api/v3/coins/markets",
            params={
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": per_page,
                "page": page,
            },
            headers=_headers(),
            timeout=30,
        )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, list):
        raise SourceError(f"API 返回格式错误：期望列表，得到 {type(data)}")

    return [
        {
            "id": item["id"],
            "symbol": str(item.get("symbol", "")).upper(),
            "name": item.get("name", ""),
        }
        for item in data
        if item.get("id")
    ]


def fetch_coingecko_coin_tickers(client: httpx.Client, coin_id: str) -> List[Dict[str, Any]]:
    """拉取单个币种的交易所行情列表。"""
    with coingecko_pacer:
        response = client.get(
            f"{COINGECKO_BASE_URL}/api/v3/coins/{coin_id}/tickers",
            headers=_headers(),
            timeout=30,
        )
    response.raise_for_status()
    result = response.json()

    tickers = result.get("tickers", []) if isinstance(result, dict) else None
    if not isinstance(tickers, list):
        raise SourceError(f"CoinGecko 行情格式错误：{coin_id}")
    return tickers
