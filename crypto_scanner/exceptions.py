class ScannerError(Exception):
    """本项目所有异常的基类。"""


class ConfigurationError(ScannerError):
    """配置缺失或非法（如缺少 API Key），整个运行立即中止。"""


class SourceError(ScannerError):
    """数据源返回非成功状态或格式异常；调用方记录日志后跳过该页/该币种。"""


class ValueSizeError(ScannerError, ValueError):
    """写入的值超过存储单键大小上限。"""
