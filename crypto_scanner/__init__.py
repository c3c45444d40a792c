"""
crypto_scanner
~~~~~~~~~~~~~~

核心业务包：
- 数据源抓取（CoinMarketCap 市值榜 / Bybit 合约 / CoinGecko 上架信息）
- 市值榜与合约目录的匹配、流动性过滤、吸筹形态分类
- 时间加权波动率估计与市值基线评分
- 分块 K 线缓存与可续跑分页游标

入口脚本位于 scripts/market_scanner.py。
"""
