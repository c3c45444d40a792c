"""
交易所上架信息（可续跑）。

按 CoinGecko 市值分页遍历币种，汇总每个币种上架的现货/合约交易所。
每处理完一页就推进游标；时间预算用尽时保存游标并退出，由调度器再次调用继续。

CoinGecko 行情没有区分现货与合约，这里用 has_trading_incentive 近似判断，
判断函数可以替换。
"""
import logging
from typing import Any, Callable, Dict, List

import httpx
import requests

from crypto_scanner.config import LISTING_CURSOR_KEY, LISTING_TOTAL_PAGES
from crypto_scanner.cursor import ResumableCursor, TimeBudget
from crypto_scanner.exceptions import SourceError
from crypto_scanner.models import COMPLETE, IN_PROGRESS, NOT_STARTED, ListingState
from crypto_scanner.sink import TabularSink
from crypto_scanner.storage import KVStore

logger = logging.getLogger(__name__)

LISTING_SHEET = "Exchange Listings"
LISTING_HEADER = ["Coin ID", "Symbol", "Name", "Spot Exchanges", "Futures Exchanges"]

FETCH_ERRORS = (requests.RequestException, httpx.HTTPError, SourceError)

TickerPredicate = Callable[[Dict[str, Any]], bool]


def has_trading_incentive(ticker: Dict[str, Any]) -> bool:
    """默认的合约判断：交易所带交易激励视为合约市场（近似）。"""
    market = ticker.get("market") or {}
    return bool(market.get("has_trading_incentive"))


def summarize_listings(
    coin: Dict[str, Any],
    tickers: List[Dict[str, Any]],
    is_futures: TickerPredicate = has_trading_incentive,
) -> List[Any]:
    spot: List[str] = []
    futures: List[str] = []
    for ticker in tickers:
        name = (ticker.get("market") or {}).get("name")
        if not name:
            continue
        bucket = futures if is_futures(ticker) else spot
        if name not in bucket:
            bucket.append(name)
    return [
        coin["id"],
        coin.get("symbol", ""),
        coin.get("name", ""),
        ", ".join(spot),
        ", ".join(futures),
    ]


def run_listing_step(
    store: KVStore,
    sink: TabularSink,
    budget: TimeBudget,
    fetch_page: Callable[[int], List[Dict[str, Any]]],
    fetch_tickers: Callable[[str], List[Dict[str, Any]]],
    total_pages: int = LISTING_TOTAL_PAGES,
    is_futures: TickerPredicate = has_trading_incentive,
) -> ListingState:
    """
    可续跑的入口：从游标所在页开始处理，直到完成或预算用尽。

    Returns:
        本次调用结束时的状态；COMPLETE 时游标为 total_pages + 1
    """
    cursor = ResumableCursor(store, LISTING_CURSOR_KEY)
    state = cursor.state(total_pages)

    if state.status == COMPLETE:
        logger.info("上架信息已全部完成（游标 %d），如需重跑请先重置", state.cursor)
        return state

    if state.status == NOT_STARTED:
        sink.write_table(LISTING_SHEET, LISTING_HEADER, [])
        cursor.save(state.cursor)

    page = state.cursor
    while page <= total_pages:
        if budget.exhausted():
            cursor.save(page)
            logger.info("时间预算已用完（%.1f 秒），下次从第 %d 页继续", budget.elapsed(), page)
            return ListingState(IN_PROGRESS, page)

        try:
            coins = fetch_page(page)
        except FETCH_ERRORS as exc:
            logger.warning("第 %d 页币种列表获取失败，跳过：%s", page, exc)
            coins = []

        rows = []
        for coin in coins:
            try:
                tickers = fetch_tickers(coin["id"])
            except FETCH_ERRORS as exc:
                logger.warning("[%s] 行情获取失败，跳过：%s", coin["id"], exc)
                continue
            rows.append(summarize_listings(coin, tickers, is_futures))

        if rows:
            sink.append_rows(LISTING_SHEET, LISTING_HEADER, rows)
        page += 1
        cursor.save(page)
        logger.info("第 %d/%d 页处理完成，写入 %d 行", page - 1, total_pages, len(rows))

    return ListingState(COMPLETE, page)


def reset_listing_cursor(store: KVStore) -> None:
    ResumableCursor(store, LISTING_CURSOR_KEY).reset()
