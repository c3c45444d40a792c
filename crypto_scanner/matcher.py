"""
市值榜币种与合约目录的对应关系。

合约目录中的小单位合约会在基础币前加数量前缀（如 1000SHIB、10000LADYS），
匹配时需要剥离前缀，并把合约价格除以该倍数换算成单币价格。
"""
from typing import Dict, Iterable, List, Optional, Tuple

from crypto_scanner.config import FUTURES_QUOTE_COIN
from crypto_scanner.models import FuturesInstrument, MatchResult

# 从长到短尝试，避免 10000 被当成 1000 + "0..."
MULTIPLIER_PREFIXES = ("1000000", "100000", "10000", "1000", "100")


def normalize_base_symbol(base_coin: str) -> Tuple[str, int]:
    """剥离数量前缀，返回 (小写基础币, 倍数)。无前缀时倍数为 1。"""
    lowered = base_coin.strip().lower()
    for prefix in MULTIPLIER_PREFIXES:
        remainder = lowered[len(prefix):]
        if lowered.startswith(prefix) and remainder and not remainder[0].isdigit():
            return remainder, int(prefix)
    return lowered, 1


def _name_token(name: str) -> str:
    parts = name.strip().lower().split()
    return parts[0] if parts else ""


def match_instrument(
    symbol: str,
    name: str,
    catalog: Iterable[FuturesInstrument],
) -> MatchResult:
    """
    在合约目录中查找与市值榜记录对应的合约。

    1. 剥离前缀后的基础币等于名称首个单词或币种符号（均小写）即视为匹配；
    2. 否则退回到基础币与符号的精确匹配（忽略大小写），倍数固定为 1；
    3. 都没有则返回不可用结果。

    多个合约同时满足条件时按目录顺序取第一个。
    """
    symbol_lower = symbol.strip().lower()
    token = _name_token(name)
    instruments = list(catalog)

    for instrument in instruments:
        normalized, divisor = normalize_base_symbol(instrument.base_coin)
        if normalized == token or normalized == symbol_lower:
            return MatchResult(
                available=True,
                futures_symbol=instrument.raw_symbol,
                price=instrument.last_price / divisor,
                divisor=divisor,
                base_coin=instrument.base_coin,
            )

    for instrument in instruments:
        if instrument.base_coin.strip().lower() == symbol_lower:
            return MatchResult(
                available=True,
                futures_symbol=instrument.raw_symbol,
                price=instrument.last_price,
                divisor=1,
                base_coin=instrument.base_coin,
            )

    return MatchResult.unavailable()


def build_futures_catalog(
    instruments: Iterable[Dict[str, str]],
    tickers: Iterable[Dict[str, str]],
    quote_coin: Optional[str] = FUTURES_QUOTE_COIN,
) -> List[FuturesInstrument]:
    """
    将合约详情与行情两组数据按 symbol 拼接成合约目录。

    没有行情价格的合约会被丢弃；目录顺序与合约详情的返回顺序一致。
    """
    prices: Dict[str, float] = {}
    for ticker in tickers:
        sym = ticker.get("symbol")
        if not sym:
            continue
        try:
            prices[sym] = float(ticker.get("lastPrice", ""))
        except (TypeError, ValueError):
            continue

    quote_filter = quote_coin.upper() if quote_coin else None
    catalog: List[FuturesInstrument] = []
    for item in instruments:
        sym = item.get("symbol")
        base = item.get("baseCoin")
        quote = item.get("quoteCoin", "")
        if not sym or not base:
            continue
        if quote_filter and quote.upper() != quote_filter:
            continue
        if sym not in prices:
            continue
        catalog.append(
            FuturesInstrument(
                raw_symbol=sym,
                base_coin=base.upper(),
                quote_coin=quote.upper(),
                last_price=prices[sym],
            )
        )
    return catalog
