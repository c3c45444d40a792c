import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """进程启动时调用一次；级别优先取参数，其次 LOG_LEVEL 环境变量，默认 INFO。"""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    # 第三方 HTTP 库的请求日志过于冗长
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.WARNING))
