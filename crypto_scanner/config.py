import os
from pathlib import Path

from .exceptions import ConfigurationError

# 统一项目输出目录
OUTPUT_DIR = Path("data")
TABLES_DIR = OUTPUT_DIR / "tables"
STORE_DIR = OUTPUT_DIR / "store"

# 数据源基础 URL
CMC_BASE_URL = "https://pro-api.coinmarketcap.com"
BYBIT_BASE_URL = "https://api.bybit.com"
COINGECKO_BASE_URL = "https://api.coingecko.com"

# 市值榜分页：每页条数 × 总页数
CMC_PAGE_SIZE = 200
CMC_TOTAL_PAGES = 5

# 各数据源的调用间隔（秒），仅用于限速
CMC_REQUEST_DELAY = 2.1
BYBIT_REQUEST_DELAY = 0.1
COINGECKO_REQUEST_DELAY = 2.5

# 合约目录只保留该计价资产
FUTURES_QUOTE_COIN = "USDT"

# K 线缓存
CANDLE_LOOKBACK_DAYS = 30
CANDLE_MIN_BARS = 8
CANDLE_CACHE_KEY = "candles"
# 单个键的硬上限 500KB，分块留出余量
STORE_MAX_VALUE_SIZE = 500_000
CANDLE_CHUNK_SIZE = 400_000

# 交易所上架信息（CoinGecko 分页）
LISTING_PAGE_SIZE = 100
LISTING_TOTAL_PAGES = 10
LISTING_CURSOR_KEY = "listing_cursor"
# 单次调用的时间预算（秒），超出后保存游标并退出
LISTING_TIME_BUDGET = 300.0

STABLECOINS = frozenset(
    {
        "USDT", "USDC", "DAI", "TUSD", "USDP", "BUSD", "FDUSD", "PYUSD",
        "USDE", "USDD", "FRAX", "GUSD", "LUSD", "USDS", "USD1", "EURC",
        "USDX", "USDJ", "SUSD", "CRVUSD", "USTC",
    }
)


def get_cmc_api_key() -> str:
    """读取 CoinMarketCap API Key，缺失时直接中止本次运行。"""
    api_key = os.getenv("CMC_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("缺少环境变量 CMC_API_KEY，无法访问 CoinMarketCap")
    return api_key
