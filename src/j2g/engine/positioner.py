"""
游标定位器

启动时把日志源游标定位到"当前时间"，只转发启动之后追加的条目。
"""

from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from j2g.domain.errors import LogSourceError, StartupError
from j2g.source.base import LogSource
from j2g.utils.time import now_usec, usec_to_datetime

if TYPE_CHECKING:
    from loguru import Logger


class CursorPositioner:
    """游标定位器"""

    def __init__(
        self,
        clock: Callable[[], int] = now_usec,
        log: "Logger | None" = None,
    ):
        """
        Args:
            clock: 返回当前墙钟时间（微秒）的函数
            log: 日志记录器
        """
        self._clock = clock
        self._log = log or logger.bind(component="positioner")

    def position(self, source: LogSource) -> int:
        """
        定位游标

        Returns:
            定位所用的时间戳（微秒）

        Raises:
            StartupError: 定位失败（没有安全的回退位置）
        """
        usec = self._clock()
        try:
            source.seek_to_time(usec)
        except LogSourceError as e:
            raise StartupError(
                f"日志游标定位失败: {e}", details={"usec": usec}
            ) from e

        self._log.info("日志游标已定位到 {}", usec_to_datetime(usec).isoformat())
        return usec
