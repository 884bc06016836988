"""
时间工具
"""

import time
from datetime import UTC, datetime

USEC_PER_SEC = 1_000_000


def now_usec() -> int:
    """当前墙钟时间（微秒，journald 的原生时间单位）"""
    return time.time_ns() // 1000


def usec_to_datetime(usec: int) -> datetime:
    return datetime.fromtimestamp(usec / USEC_PER_SEC, tz=UTC)


def format_duration(seconds: float) -> str:
    """格式化持续时间"""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    else:
        return f"{seconds / 3600:.1f}h"
