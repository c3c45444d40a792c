"""
扫描流程编排。

- run_market_scan：合约目录 + 市值榜 → 流动性过滤 → 合约匹配 → 吸筹分类，按市值档位写表
- run_volatility_pass：对已写入的表追加波动率列
- refresh_candle_cache：刷新全部合约的日线缓存
- cached_candle_source：波动率计算时优先读缓存

单个数据源调用失败只记录并跳过对应的页/币种，不中断整个批次。
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

import httpx
import requests

from crypto_scanner.accumulation import classify, describe_pattern
from crypto_scanner.candle_cache import ChunkedCandleCache
from crypto_scanner.config import CANDLE_MIN_BARS, CMC_TOTAL_PAGES, get_cmc_api_key
from crypto_scanner.exceptions import SourceError
from crypto_scanner.liquidity import (
    TIERS,
    check_vol_cap_range,
    format_vol_cap_comment,
    passes_liquidity_gate,
    tier_for_cap,
)
from crypto_scanner.matcher import match_instrument
from crypto_scanner.models import (
    TABLE_HEADER,
    UNAVAILABLE,
    VOLATILITY_HEADER,
    CandleSeries,
    ClassifiedInstrument,
    FuturesInstrument,
    MarketRecord,
    VolatilityRecord,
)
from crypto_scanner.sink import TabularSink
from crypto_scanner.volatility_analysis import VolatilityBaseline, build_volatility_record

logger = logging.getLogger(__name__)

FETCH_ERRORS = (requests.RequestException, httpx.HTTPError, SourceError)

FetchPage = Callable[[str, int], List[MarketRecord]]
FetchCatalog = Callable[[], List[FuturesInstrument]]
FetchCandles = Callable[[str], CandleSeries]


def classify_record(
    record: MarketRecord, catalog: List[FuturesInstrument]
) -> Optional[ClassifiedInstrument]:
    """单个币种的完整判定；未通过流动性过滤时返回 None。"""
    if not passes_liquidity_gate(record):
        return None

    match = match_instrument(record.symbol, record.name, catalog)
    accumulating, pattern = classify(
        record.pct_change_24h, record.pct_change_7d, record.pct_change_30d
    )
    vol_cap = check_vol_cap_range(record.volume_24h, record.market_cap)
    return ClassifiedInstrument(
        record=record,
        match=match,
        tier=tier_for_cap(record.market_cap),
        is_accumulating=accumulating,
        pattern=pattern,
        pattern_remark=describe_pattern(pattern),
        vol_cap_status=format_vol_cap_comment(vol_cap),
    )


def scan_records(
    records: Iterable[MarketRecord], catalog: List[FuturesInstrument]
) -> Dict[str, List[ClassifiedInstrument]]:
    results: Dict[str, List[ClassifiedInstrument]] = {tier.name: [] for tier in TIERS}
    for record in records:
        classified = classify_record(record, catalog)
        if classified is not None:
            results[classified.tier.name].append(classified)
    return results


def run_market_scan(
    sink: TabularSink,
    fetch_page: FetchPage,
    fetch_catalog: FetchCatalog,
    api_key: Optional[str] = None,
    total_pages: int = CMC_TOTAL_PAGES,
) -> Dict[str, List[ClassifiedInstrument]]:
    """全量扫描并按档位整表替换写入。缺少 API Key 时在任何网络请求前中止。"""
    if api_key is None:
        api_key = get_cmc_api_key()

    try:
        catalog = fetch_catalog()
    except FETCH_ERRORS as exc:
        logger.warning("合约目录获取失败，本轮全部标记为不可用：%s", exc)
        catalog = []
    logger.info("合约目录共 %d 个合约", len(catalog))

    records: List[MarketRecord] = []
    fetched_pages = 0
    for page in range(1, total_pages + 1):
        try:
            page_records = fetch_page(api_key, page)
        except FETCH_ERRORS as exc:
            logger.warning("市值榜第 %d 页获取失败，跳过：%s", page, exc)
            continue
        fetched_pages += 1
        records.extend(page_records)
        logger.info("市值榜第 %d/%d 页：%d 条", page, total_pages, len(page_records))

    results = scan_records(records, catalog)
    if fetched_pages == 0:
        logger.warning("市值榜全部页面获取失败，保留上一轮的档位表")
        return results

    for tier in TIERS:
        rows = [item.to_row() for item in results[tier.name]]
        sink.write_table(tier.label, TABLE_HEADER, rows)

    total = sum(len(items) for items in results.values())
    logger.info("扫描完成：%d 条记录，%d 个通过过滤", len(records), total)
    return results


def run_volatility_pass(
    sink: TabularSink,
    fetch_candles: FetchCandles,
    baseline: Optional[VolatilityBaseline] = None,
    now: Optional[datetime] = None,
) -> Dict[str, VolatilityRecord]:
    """对每个档位表中有合约的行计算波动率，按 Futures Symbol 追加三列。"""
    scored: Dict[str, VolatilityRecord] = {}
    for tier in TIERS:
        table = sink.read_table(tier.label)
        if table is None:
            continue
        header, rows = table
        symbol_index = header.index("Futures Symbol")
        cap_index = header.index("MarketCap")

        values = {}
        for row in rows:
            symbol = row[symbol_index]
            if not symbol or symbol == UNAVAILABLE:
                continue
            try:
                market_cap = float(row[cap_index])
            except (TypeError, ValueError):
                continue
            try:
                series = fetch_candles(symbol)
            except FETCH_ERRORS as exc:
                logger.warning("[%s] 日线获取失败，跳过：%s", symbol, exc)
                continue

            record = build_volatility_record(symbol, series, market_cap, baseline, now)
            if record is None:
                logger.debug("[%s] 数据不足，未计算波动率", symbol)
                continue
            scored[symbol] = record
            values[symbol] = [
                round(record.pct_volatility, 4),
                round(record.z_score, 4),
                record.remark,
            ]

        if values:
            sink.append_columns(tier.label, "Futures Symbol", VOLATILITY_HEADER, values)
    return scored


def _bar_utc_date(time_ms: int):
    return datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc).date()


def cached_candle_source(
    cached: Dict[str, CandleSeries],
    fetch_candles: FetchCandles,
    now: Optional[datetime] = None,
) -> FetchCandles:
    """
    优先使用缓存中的日线，缓存里没有的合约再向数据源请求。

    波动率把最后一根 K 线当作当天，缓存的最后一根不是当前 UTC 日时同样重新请求。
    """
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    today = current.astimezone(timezone.utc).date()

    def fetch(symbol: str) -> CandleSeries:
        series = cached.get(symbol)
        if series is not None and len(series) >= 2 and _bar_utc_date(series.time[-1]) == today:
            return series
        return fetch_candles(symbol)

    return fetch


def refresh_candle_cache(
    cache: ChunkedCandleCache,
    symbols: Iterable[str],
    fetch_candles: FetchCandles,
    min_bars: int = CANDLE_MIN_BARS,
) -> int:
    """拉取日线并整体替换缓存，返回写入的块数；一个合约都没有拿到时不改动缓存并返回 0。"""
    series_map: Dict[str, CandleSeries] = {}
    for symbol in symbols:
        try:
            series = fetch_candles(symbol)
        except FETCH_ERRORS as exc:
            logger.warning("[%s] 日线获取失败，跳过：%s", symbol, exc)
            continue
        if len(series) < min_bars:
            logger.debug("[%s] 仅 %d 根日线，不足 %d 根，跳过", symbol, len(series), min_bars)
            continue
        series_map[symbol] = series

    if not series_map:
        logger.warning("没有获取到任何可用日线，保留现有缓存")
        return 0
    return cache.write(series_map)
