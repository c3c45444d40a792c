from .bybit import (
    fetch_bybit_daily_candles,
    fetch_bybit_futures_catalog,
    fetch_bybit_tickers,
    list_bybit_instruments,
)
from .coingecko import (
    fetch_coingecko_coin_tickers,
    fetch_coingecko_coins_page,
)
from .coinmarketcap import fetch_cmc_listings_page, parse_cmc_entry

__all__ = [
    "fetch_bybit_daily_candles",
    "fetch_bybit_futures_catalog",
    "fetch_bybit_tickers",
    "list_bybit_instruments",
    "fetch_coingecko_coin_tickers",
    "fetch_coingecko_coins_page",
    "fetch_cmc_listings_page",
    "parse_cmc_entry",
]
