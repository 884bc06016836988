"""
排空循环

状态机：

    DRAINING ──无新条目──> WAITING ──APPENDED/INVALIDATED──> DRAINING
                             │  └──NO_CHANGE/UNKNOWN──> WAITING
                             └──取消令牌──> SHUTTING_DOWN（终态）

DRAINING 按游标顺序逐条读取并转发；单条失败只记录日志并跳过。
每转发一条都检查取消令牌，持续写入的日志源不会拖住关闭。
WAITING 每次只装载一个等待器，并同时观察取消令牌；装载前总会先检查令牌，
因此关闭最多延迟一个等待超时周期。
SHUTTING_DOWN 停止等待器并在其返回后关闭日志源。
"""

import asyncio
import contextlib
from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from j2g.domain.enums import AdvanceOutcome, DrainState, WaitEvent
from j2g.domain.errors import LogSourceError, SerializationError
from j2g.domain.models import DrainStats, Record, WaitOutcome
from j2g.engine.cancellation import CancellationToken
from j2g.engine.waiter import Waiter
from j2g.source.base import LogSource
from j2g.transport.base import Forwarder
from j2g.utils.json import encode_record

if TYPE_CHECKING:
    from loguru import Logger

DEFAULT_WAIT_TIMEOUT = 1.0
DEFAULT_ADVANCE_ERROR_LIMIT = 16
DEFAULT_YIELD_EVERY = 256


class DrainLoop:
    """
    日志排空循环

    持有日志源和等待器；run() 返回时日志源已关闭。
    """

    def __init__(
        self,
        source: LogSource,
        forwarder: Forwarder,
        waiter: Waiter | None = None,
        serializer: Callable[[Record], bytes] = encode_record,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        advance_error_limit: int = DEFAULT_ADVANCE_ERROR_LIMIT,
        yield_every: int = DEFAULT_YIELD_EVERY,
        log: "Logger | None" = None,
    ):
        """
        Args:
            source: 日志源
            forwarder: 转发器
            waiter: 等待器（默认基于 source 创建）
            serializer: 条目序列化函数，失败时抛出 SerializationError
            wait_timeout: 单次等待超时（秒），决定响应关闭的最长延迟
            advance_error_limit: 连续前进失败多少次后结束本轮排空
            yield_every: 每排空多少条让出一次事件循环
        """
        self._source = source
        self._forwarder = forwarder
        self._log = log or logger.bind(component="drain")
        self._waiter = waiter or Waiter(source, log=self._log)
        self._serializer = serializer
        self._wait_timeout = wait_timeout
        self._advance_error_limit = max(1, advance_error_limit)
        self._yield_every = max(1, yield_every)

        self._state = DrainState.DRAINING
        self._stats = DrainStats()
        self._running = False

    @property
    def state(self) -> DrainState:
        return self._state

    @property
    def stats(self) -> DrainStats:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, token: CancellationToken) -> DrainStats:
        """
        运行排空循环，直到取消令牌被触发

        Returns:
            本次运行的统计
        """
        if self._state == DrainState.SHUTTING_DOWN:
            return self._stats

        self._running = True
        cancelled = asyncio.ensure_future(token.wait())
        self._log.info("开始读取日志 (wait_timeout={}s)", self._wait_timeout)

        try:
            while self._state != DrainState.SHUTTING_DOWN:
                if self._state == DrainState.DRAINING:
                    await self._drain(token)
                    self._state = DrainState.WAITING
                else:
                    self._state = await self._wait_once(token, cancelled)
        finally:
            self._state = DrainState.SHUTTING_DOWN
            cancelled.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cancelled
            await self._shutdown()
            self._running = False

        return self._stats

    async def _drain(self, token: CancellationToken) -> None:
        """DRAINING：逐条前进直到没有新条目，或取消令牌被触发"""
        consecutive_errors = 0
        burst = 0

        while True:
            try:
                outcome = self._source.advance()
            except LogSourceError as e:
                self._stats.advance_errors += 1
                consecutive_errors += 1
                self._log.error("日志遍历错误: {}", e)
                if consecutive_errors >= self._advance_error_limit:
                    self._log.warning("连续 {} 次遍历失败，暂停排空", consecutive_errors)
                    return
                continue

            consecutive_errors = 0
            if outcome == AdvanceOutcome.NO_NEW_ENTRY:
                return

            self._stats.advanced += 1
            self._forward_current()
            if token.is_set:
                self._log.info("收到关闭请求，停止排空")
                return

            burst += 1
            if burst % self._yield_every == 0:
                await asyncio.sleep(0)

    def _forward_current(self) -> None:
        """读取、序列化并转发游标处的条目；失败则跳过"""
        try:
            record = self._source.current_record()
        except LogSourceError as e:
            self._stats.fetch_dropped += 1
            self._log.warning("跳过无法读取的条目: {}", e)
            return

        self._log.debug("收到条目: {}", record)

        try:
            payload = self._serializer(record)
        except SerializationError as e:
            self._stats.encode_dropped += 1
            self._log.warning("跳过无法序列化的条目: {}", e)
            return

        self._forwarder.send(payload)
        self._stats.forwarded += 1

    async def _wait_once(
        self, token: CancellationToken, cancelled: asyncio.Future
    ) -> DrainState:
        """WAITING：装载一个等待器，取最先发生的事件决定下一状态"""
        if token.is_set:
            return DrainState.SHUTTING_DOWN

        waiting = self._waiter.arm(self._wait_timeout)
        self._stats.waits += 1
        done, _ = await asyncio.wait(
            {waiting, cancelled}, return_when=asyncio.FIRST_COMPLETED
        )
        if waiting not in done:
            return DrainState.SHUTTING_DOWN

        return self._interpret(self._waiter.collect())

    def _interpret(self, outcome: WaitOutcome) -> DrainState:
        if outcome.event == WaitEvent.APPENDED:
            return DrainState.DRAINING
        if outcome.event == WaitEvent.NO_CHANGE:
            return DrainState.WAITING
        if outcome.event == WaitEvent.INVALIDATED:
            self._stats.invalidations += 1
            self._log.warning("日志文件已轮转或失效，重新同步")
            return DrainState.DRAINING

        self._stats.unknown_events += 1
        self._log.warning("收到未知事件: {}", outcome.code)
        return DrainState.WAITING

    async def _shutdown(self) -> None:
        """SHUTTING_DOWN：停止等待器后关闭日志源"""
        self._log.info("正在关闭日志源")
        try:
            await self._waiter.stop()
        finally:
            self._source.close()
        self._log.info(
            "读取结束: advanced={} forwarded={} dropped={} advance_errors={}",
            self._stats.advanced,
            self._stats.forwarded,
            self._stats.dropped,
            self._stats.advance_errors,
        )
