"""
加密货币吸筹扫描脚本。

子命令：
- scan            市值榜 × 合约目录全量扫描，按市值档位写表
- volatility      为已写入的档位表追加波动率、Z 分数和评价
- refresh-cache   刷新全部合约的日线分块缓存
- listings        交易所上架信息（可续跑，由调度器反复调用）
- reset-listings  重置上架信息的分页游标

输出保存在 data/tables/，键值存储保存在 data/store/。
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import httpx

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from crypto_scanner.candle_cache import ChunkedCandleCache
from crypto_scanner.config import (
    CANDLE_LOOKBACK_DAYS,
    LISTING_TIME_BUDGET,
    LISTING_TOTAL_PAGES,
    STORE_DIR,
    TABLES_DIR,
)
from crypto_scanner.cursor import TimeBudget
from crypto_scanner.exceptions import ConfigurationError
from crypto_scanner.fetchers import (
    fetch_bybit_daily_candles,
    fetch_bybit_futures_catalog,
    fetch_cmc_listings_page,
    fetch_coingecko_coin_tickers,
    fetch_coingecko_coins_page,
)
from crypto_scanner.listing import reset_listing_cursor, run_listing_step
from crypto_scanner.logging_config import setup_logging
from crypto_scanner.scanner import (
    cached_candle_source,
    refresh_candle_cache,
    run_market_scan,
    run_volatility_pass,
)
from crypto_scanner.sink import JsonTableSink
from crypto_scanner.storage import FileKVStore
from crypto_scanner.volatility_analysis import VolatilityBaseline

logger = logging.getLogger("market_scanner")


def parse_args() -> argparse.Namespace:
    """解析命令行参数。"""
    parser = argparse.ArgumentParser(description="加密货币吸筹形态与波动率扫描")
    parser.add_argument("--tables-dir", type=Path, default=TABLES_DIR, help="表格输出目录")
    parser.add_argument("--store-dir", type=Path, default=STORE_DIR, help="键值存储目录")
    parser.add_argument("--log-level", help="日志级别，默认读取 LOG_LEVEL 或 INFO")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("scan", help="全量扫描并按市值档位写表")
    sub.add_parser("volatility", help="为档位表追加波动率列")

    cache = sub.add_parser("refresh-cache", help="刷新日线分块缓存")
    cache.add_argument(
        "--days",
        type=int,
        default=CANDLE_LOOKBACK_DAYS,
        help=f"日线回看天数，默认 {CANDLE_LOOKBACK_DAYS}",
    )

    listings = sub.add_parser("listings", help="交易所上架信息（可续跑）")
    listings.add_argument(
        "--budget",
        type=float,
        default=LISTING_TIME_BUDGET,
        help=f"本次调用的时间预算（秒），默认 {LISTING_TIME_BUDGET}",
    )
    listings.add_argument(
        "--pages",
        type=int,
        default=LISTING_TOTAL_PAGES,
        help=f"总页数，默认 {LISTING_TOTAL_PAGES}",
    )

    sub.add_parser("reset-listings", help="重置上架信息游标")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    setup_logging(args.log_level)
    try:
        run(args)
    except ConfigurationError as exc:
        logger.error("配置错误：%s", exc)
        sys.exit(1)
    except Exception as exc:  # pragma: no cover - 顶层兜底
        logger.exception("执行失败：%s", exc)
        sys.exit(1)


def run(args: argparse.Namespace) -> None:
    sink = JsonTableSink(args.tables_dir)
    store = FileKVStore(args.store_dir)

    if args.command == "scan":
        run_market_scan(
            sink,
            fetch_page=lambda api_key, page: fetch_cmc_listings_page(api_key, page),
            fetch_catalog=fetch_bybit_futures_catalog,
        )
    elif args.command == "volatility":
        now = datetime.now(timezone.utc)
        cached = ChunkedCandleCache(store).read()
        logger.info("日线缓存中有 %d 个合约", len(cached))
        with httpx.Client() as client:
            run_volatility_pass(
                sink,
                fetch_candles=cached_candle_source(
                    cached,
                    lambda symbol: fetch_bybit_daily_candles(client, symbol, days=2, now=now),
                    now=now,
                ),
                baseline=VolatilityBaseline.from_env(),
                now=now,
            )
    elif args.command == "refresh-cache":
        catalog = fetch_bybit_futures_catalog()
        with httpx.Client() as client:
            chunks = refresh_candle_cache(
                ChunkedCandleCache(store),
                [instrument.raw_symbol for instrument in catalog],
                fetch_candles=lambda symbol: fetch_bybit_daily_candles(
                    client, symbol, days=args.days
                ),
            )
        print(f"日线缓存已刷新，共 {chunks} 块。")
    elif args.command == "listings":
        with httpx.Client() as client:
            state = run_listing_step(
                store,
                sink,
                TimeBudget(args.budget),
                fetch_page=fetch_coingecko_coins_page,
                fetch_tickers=lambda coin_id: fetch_coingecko_coin_tickers(client, coin_id),
                total_pages=args.pages,
            )
        print(f"上架信息状态：{state.status}，游标 {state.cursor}")
    elif args.command == "reset-listings":
        reset_listing_cursor(store)


if __name__ == "__main__":
    main()
