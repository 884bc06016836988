"""
等待器

在独立线程中执行日志源的阻塞 wait() 调用，使事件循环可以同时观察
等待结果和取消令牌。

等待器是一个可复用的句柄，由排空循环持有：
- arm(): 装载一次等待，返回可 await 的 future
- collect(): 回收已完成的等待并返回结果
- stop(): 不再接受装载，等待正在进行的调用返回

底层使用单线程执行器，且上一次等待未回收前拒绝再次装载，
因此同一日志源上永远只有一个 wait() 在执行。
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from loguru import logger

from j2g.domain.errors import LogSourceError, WaiterError
from j2g.domain.models import WaitOutcome
from j2g.source.base import INDEFINITE_WAIT, LogSource

if TYPE_CHECKING:
    from loguru import Logger


class Waiter:
    """日志源等待器"""

    def __init__(self, source: LogSource, log: "Logger | None" = None):
        self._source = source
        self._log = log or logger.bind(component="waiter")
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="j2g-waiter")
        self._future: asyncio.Future | None = None
        self._stopped = False
        self._armed_count = 0

    @property
    def armed(self) -> bool:
        """是否有尚未回收的等待"""
        return self._future is not None

    @property
    def in_flight(self) -> bool:
        """是否有正在执行的等待调用"""
        return self._future is not None and not self._future.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def armed_count(self) -> int:
        return self._armed_count

    def arm(self, timeout: float = INDEFINITE_WAIT) -> asyncio.Future:
        """
        装载一次等待

        Args:
            timeout: 最长等待秒数，INDEFINITE_WAIT 表示一直等待

        Raises:
            WaiterError: 已停止，或上一次等待尚未回收
        """
        if self._stopped:
            raise WaiterError("等待器已停止")
        if self._future is not None:
            raise WaiterError("上一次等待尚未回收")

        loop = asyncio.get_running_loop()
        self._future = loop.run_in_executor(self._executor, self._source.wait, timeout)
        self._armed_count += 1
        return self._future

    def collect(self) -> WaitOutcome:
        """
        回收已完成的等待

        日志源抛出的 LogSourceError 视为未知结果。

        Raises:
            WaiterError: 没有已完成的等待
        """
        future = self._future
        if future is None or not future.done():
            raise WaiterError("没有已完成的等待可回收")
        self._future = None

        try:
            return future.result()
        except LogSourceError as e:
            self._log.warning("等待日志变化失败: {}", e)
            return WaitOutcome.unknown(-(e.errno or 0))

    async def stop(self) -> None:
        """停止等待器，等待正在进行的调用返回后释放线程"""
        if self._stopped:
            return
        self._stopped = True

        future = self._future
        self._future = None
        if future is not None:
            if not future.done():
                self._log.debug("等待进行中的 wait() 返回")
            await asyncio.wait({future})
            if not future.cancelled() and future.exception() is not None:
                self._log.debug("停止时丢弃等待异常: {}", future.exception())

        self._executor.shutdown(wait=False)
        self._log.debug("等待器已停止 (共装载 {} 次)", self._armed_count)
