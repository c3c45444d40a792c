import logging
from typing import Any, Dict, List, Optional

import requests

from crypto_scanner.config import CMC_BASE_URL, CMC_PAGE_SIZE
from crypto_scanner.exceptions import SourceError
from crypto_scanner.models import MarketRecord
from crypto_scanner.rate_limiter import cmc_pacer

logger = logging.getLogger(__name__)


def fetch_cmc_listings_page(
    api_key: str,
    page: int,
    page_size: int = CMC_PAGE_SIZE,
    session: Optional[requests.Session] = None,
) -> List[MarketRecord]:
    """拉取 CoinMarketCap 市值榜的第 page 页（从 1 开始）。"""
    http = session or requests
    with cmc_pacer:
        response = http.get(
            f"{CMC_BASE_URL}/v1/cryptocurrency/listings/latest",
            params={
                "start": (page - 1) * page_size + 1,
                "limit": page_size,
                "convert": "USD",
            },
            headers={"X-CMC_PRO_API_KEY": api_key, "Accept": "application/json"},
            timeout=30,
        )
    response.raise_for_status()
    result = response.json()

    status = result.get("status") or {}
    if status.get("error_code", 0) != 0:
        raise SourceError(f"CoinMarketCap API 错误：{status.get('error_message', '未知错误')}")

    data = result.get("data", [])
    if not isinstance(data, list):
        raise SourceError(f"API 返回格式错误：期望列表，得到 {type(data)}")

    records: List[MarketRecord] = []
    for entry in data:
        record = parse_cmc_entry(entry)
        if record is not None:
            records.append(record)
    return records


def parse_cmc_entry(entry: Dict[str, Any]) -> Optional[MarketRecord]:
    """解析单条市值榜记录，字段缺失或非数值时返回 None。"""
    quote = (entry.get("quote") or {}).get("USD") or {}
    try:
        return MarketRecord(
            symbol=str(entry["symbol"]).upper(),
            name=str(entry.get("name", "")),
            price=float(quote["price"]),
            volume_24h=float(quote["volume_24h"]),
            market_cap=float(quote["market_cap"]),
            pct_change_24h=float(quote["percent_change_24h"]),
            pct_change_7d=float(quote["percent_change_7d"]),
            pct_change_30d=float(quote["percent_change_30d"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.debug("跳过字段不完整的记录：%s", entry.get("symbol"))
        return None
