"""
数据源适配层测试（不访问网络）。

requests 调用用 unittest.mock 打桩，httpx 调用用 MockTransport。
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest

from crypto_scanner.exceptions import SourceError
from crypto_scanner.fetchers.bybit import (
    fetch_bybit_daily_candles,
    fetch_bybit_futures_catalog,
    list_bybit_instruments,
)
from crypto_scanner.fetchers.coingecko import (
    fetch_coingecko_coin_tickers,
    fetch_coingecko_coins_page,
)
from crypto_scanner.fetchers.coinmarketcap import fetch_cmc_listings_page, parse_cmc_entry


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


CMC_ENTRY = {
    "symbol": "abc",
    "name": "Abc Network",
    "quote": {
        "USD": {
            "price": 1.0,
            "volume_24h": 2_000_000,
            "market_cap": 50_000_000,
            "percent_change_24h": 2.0,
            "percent_change_7d": 4.0,
            "percent_change_30d": 15.0,
        }
    },
}


class TestCoinMarketCap:
    def test_page_offset_and_key(self):
        payload = {"status": {"error_code": 0}, "data": [CMC_ENTRY, {"symbol": "BROKEN"}]}
        with patch(
            "crypto_scanner.fetchers.coinmarketcap.requests.get",
            return_value=_response(payload),
        ) as get:
            records = fetch_cmc_listings_page("secret", page=3, page_size=200)

        kwargs = get.call_args.kwargs
        assert kwargs["params"]["start"] == 401
        assert kwargs["params"]["limit"] == 200
        assert kwargs["headers"]["X-CMC_PRO_API_KEY"] == "secret"
        assert [record.symbol for record in records] == ["ABC"]
        assert records[0].market_cap == 50_000_000.0

    def test_error_code_raises(self):
        payload = {"status": {"error_code": 1002, "error_message": "API key missing."}}
        with patch(
            "crypto_scanner.fetchers.coinmarketcap.requests.get",
            return_value=_response(payload),
        ):
            with pytest.raises(SourceError, match="API key missing"):
                fetch_cmc_listings_page("bad", page=1)

    def test_parse_entry_with_null_change(self):
        entry = {**CMC_ENTRY, "quote": {"USD": {**CMC_ENTRY["quote"]["USD"], "percent_change_30d": None}}}
        assert parse_cmc_entry(entry) is None


class TestBybitCatalog:
    def test_instruments_follow_page_cursor(self):
        pages = [
            {
                "retCode": 0,
                "result": {
                    "list": [
                        {"symbol": "ABCUSDT", "baseCoin": "ABC", "quoteCoin": "USDT", "status": "Trading"},
                        {"symbol": "OLDUSDT", "baseCoin": "OLD", "quoteCoin": "USDT", "status": "Closed"},
                    ],
                    "nextPageCursor": "page2",
                },
            },
            {
                "retCode": 0,
                "result": {
                    "list": [
                        {"symbol": "1000PEPEUSDT", "baseCoin": "1000PEPE", "quoteCoin": "USDT", "status": "Trading"},
                    ],
                    "nextPageCursor": "",
                },
            },
        ]
        with patch(
            "crypto_scanner.fetchers.bybit.requests.get",
            side_effect=[_response(page) for page in pages],
        ) as get:
            instruments = list_bybit_instruments()

        assert [item["symbol"] for item in instruments] == ["ABCUSDT", "1000PEPEUSDT"]
        assert "cursor" not in get.call_args_list[0].kwargs["params"]
        assert get.call_args_list[1].kwargs["params"]["cursor"] == "page2"

    def test_catalog_joins_prices(self):
        instruments = {
            "retCode": 0,
            "result": {
                "list": [
                    {"symbol": "ABCUSDT", "baseCoin": "ABC", "quoteCoin": "USDT", "status": "Trading"},
                    {"symbol": "XYZUSDT", "baseCoin": "XYZ", "quoteCoin": "USDT", "status": "Trading"},
                ]
            },
        }
        tickers = {"retCode": 0, "result": {"list": [{"symbol": "ABCUSDT", "lastPrice": "1.25"}]}}
        with patch(
            "crypto_scanner.fetchers.bybit.requests.get",
            side_effect=[_response(instruments), _response(tickers)],
        ):
            catalog = fetch_bybit_futures_catalog()

        assert [(item.raw_symbol, item.last_price) for item in catalog] == [("ABCUSDT", 1.25)]

    def test_ret_code_raises(self):
        with patch(
            "crypto_scanner.fetchers.bybit.requests.get",
            return_value=_response({"retCode": 10006, "retMsg": "Too many visits!"}),
        ):
            with pytest.raises(SourceError, match="Too many visits"):
                list_bybit_instruments()


def _mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestBybitKline:
    NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_sorted_oldest_first(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={
                    "retCode": 0,
                    "result": {
                        "list": [
                            ["1741564800000", "101", "108", "99", "105", "1200", "0"],
                            ["1741478400000", "98", "102", "96", "100", "1000", "0"],
                        ]
                    },
                },
            )

        with _mock_client(handler) as client:
            series = fetch_bybit_daily_candles(client, "abcusdt", days=2, now=self.NOW)

        assert seen["params"]["symbol"] == "ABCUSDT"
        assert seen["params"]["interval"] == "D"
        assert series.time == [1741478400000, 1741564800000]
        assert series.close == [100.0, 105.0]
        assert series.open == [98.0, 101.0]

    def test_ret_code_raises(self):
        def handler(request):
            return httpx.Response(200, json={"retCode": 10001, "retMsg": "params error"})

        with _mock_client(handler) as client:
            with pytest.raises(SourceError):
                fetch_bybit_daily_candles(client, "ABCUSDT", now=self.NOW)

    def test_malformed_entry_raises(self):
        def handler(request):
            return httpx.Response(200, json={"retCode": 0, "result": {"list": [["1", "2"]]}})

        with _mock_client(handler) as client:
            with pytest.raises(SourceError):
                fetch_bybit_daily_candles(client, "ABCUSDT", now=self.NOW)

    def test_http_error_propagates(self):
        def handler(request):
            return httpx.Response(503)

        with _mock_client(handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                fetch_bybit_daily_candles(client, "ABCUSDT", now=self.NOW)


class TestCoinGecko:
    def test_coins_page(self, monkeypatch):
        monkeypatch.setenv("COINGECKO_API_KEY", "demo")
        payload = [{"id": "bitcoin", "symbol": "btc", "name": "Bitcoin"}, {"symbol": "noid"}]
        with patch(
            "crypto_scanner.fetchers.coingecko.requests.get",
            return_value=_response(payload),
        ) as get:
            coins = fetch_coingecko_coins_page(2)

        assert coins == [{"id": "bitcoin", "symbol": "BTC", "name": "Bitcoin"}]
        assert get.call_args.kwargs["params"]["page"] == 2
        assert get.call_args.kwargs["headers"]["x-cg-demo-api-key"] == "demo"

    def test_coin_tickers(self):
        def handler(request):
            assert request.url.path == "/api/v3/coins/bitcoin/tickers"
            return httpx.Response(
                200,
                json={"tickers": [{"market": {"name": "Bybit", "has_trading_incentive": False}}]},
            )

        with _mock_client(handler) as client:
            tickers = fetch_coingecko_coin_tickers(client, "bitcoin")
        assert tickers[0]["market"]["name"] == "Bybit"

    def test_coin_tickers_bad_shape(self):
        def handler(request):
            return httpx.Response(200, json=[])

        with _mock_client(handler) as client:
            with pytest.raises(SourceError):
                fetch_coingecko_coin_tickers(client, "bitcoin")
