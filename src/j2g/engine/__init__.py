"""
引擎模块

- CursorPositioner: 启动时定位日志游标
- Waiter: 单飞的日志源等待器
- DrainLoop: 排空并转发日志的状态机
- CancellationToken: 单次触发的关闭信号
"""

from j2g.engine.cancellation import CancellationToken
from j2g.engine.drain import DEFAULT_WAIT_TIMEOUT, DrainLoop
from j2g.engine.positioner import CursorPositioner
from j2g.engine.waiter import Waiter

__all__ = [
    "CancellationToken",
    "CursorPositioner",
    "DrainLoop",
    "Waiter",
    "DEFAULT_WAIT_TIMEOUT",
]
