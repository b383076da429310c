"""
时间处理工具模块
提供文件修改时间到 ISO 8601 字符串的转换
"""

from datetime import datetime, timezone


def format_iso_millis(timestamp: float) -> str:
    """
    将 POSIX 时间戳格式化为毫秒精度、Z 后缀的 UTC ISO 8601 字符串

    Args:
        timestamp: POSIX 时间戳（例如 os.stat().st_mtime）

    Returns:
        str: 例如 '2025-01-01T10:00:00.000Z'
    """
    dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
