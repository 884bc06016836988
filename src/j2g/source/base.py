"""
日志源协议

定义排空循环、等待器和游标定位器所依赖的日志源接口。
日志源是只追加、按游标寻址的结构化记录序列。
"""

import math
from typing import Protocol

from j2g.domain.enums import AdvanceOutcome
from j2g.domain.models import Record, WaitOutcome

# 无限等待标记：传给 wait() 表示一直阻塞直到日志变化
INDEFINITE_WAIT: float = math.inf


class LogSource(Protocol):
    """日志源协议

    除 wait() 外的方法都应快速返回；失败时抛出 LogSourceError。
    同一句柄上同一时刻只允许一个 wait() 调用。
    """

    def seek_to_time(self, usec: int) -> None:
        """将游标定位到指定墙钟时间（微秒）"""
        ...

    def advance(self) -> AdvanceOutcome:
        """游标前进一条"""
        ...

    def current_record(self) -> Record:
        """读取游标处的完整条目"""
        ...

    def wait(self, timeout: float = INDEFINITE_WAIT) -> WaitOutcome:
        """阻塞等待日志变化或超时（秒）"""
        ...

    def close(self) -> None:
        """释放句柄（可重复调用）"""
        ...
