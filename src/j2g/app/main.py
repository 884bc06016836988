"""
应用主入口

负责组装和运行转发器应用。
"""

import asyncio
import signal
import sys
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from loguru import logger

from j2g.app.lifecycle import Lifecycle
from j2g.app.wiring import Container, create_container
from j2g.config import ForwarderConfig
from j2g.domain.models import DrainStats
from j2g.engine.cancellation import CancellationToken
from j2g.utils.time import format_duration

if TYPE_CHECKING:
    from loguru import Logger

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """关闭协调器

    将 SIGINT / SIGTERM 转换为取消令牌的单次触发：
    - 第一次信号：触发令牌，排空循环在当前周期结束后退出
    - 之后的信号：只记录日志，不再改变令牌
    """

    def __init__(
        self,
        token: CancellationToken,
        signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
        log: "Logger | None" = None,
    ):
        self._token = token
        self._signals = tuple(signals)
        self._log = log or logger.bind(component="shutdown")
        self._signal_count = 0
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_handlers: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, Any] = {}

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def signal_count(self) -> int:
        return self._signal_count

    def install(self) -> None:
        """安装信号处理器（需在事件循环中调用）"""
        if self._loop is not None:
            return
        self._loop = asyncio.get_running_loop()

        for sig in self._signals:
            if sys.platform != "win32":
                try:
                    self._loop.add_signal_handler(sig, self.handle_signal, sig)
                    self._loop_handlers.append(sig)
                    continue
                except (RuntimeError, ValueError, NotImplementedError):
                    pass
            self._previous_handlers[sig] = signal.signal(sig, self._threadsafe_handler)

    def uninstall(self) -> None:
        """恢复原有信号处理器"""
        if self._loop is None:
            return
        for sig in self._loop_handlers:
            self._loop.remove_signal_handler(sig)
        for sig, previous in self._previous_handlers.items():
            signal.signal(sig, previous)
        self._loop_handlers.clear()
        self._previous_handlers.clear()
        self._loop = None

    def _threadsafe_handler(self, signum: int, frame: Any) -> None:
        if self._loop and self._loop.is_running():
            self._loop.call_soon_threadsafe(self.handle_signal, signum)
        else:
            self.handle_signal(signum)

    def handle_signal(self, signum: int | signal.Signals) -> None:
        """处理一次信号"""
        self._signal_count += 1
        sig_name = signal.Signals(signum).name

        if self._token.set(reason=sig_name):
            self._log.info("收到 {}，开始关闭...", sig_name)
        else:
            self._log.warning("收到第 {} 次 {}，已在关闭中", self._signal_count, sig_name)


class Application:
    """转发器应用"""

    def __init__(self, config: ForwarderConfig, container: Container | None = None):
        self.config = config
        self.container = container
        self.token = CancellationToken()
        self.lifecycle = Lifecycle()
        self._shutdown = ShutdownCoordinator(self.token)

    @property
    def shutdown_coordinator(self) -> ShutdownCoordinator:
        return self._shutdown

    def setup(self) -> Container:
        """初始化应用（打开日志源）"""
        if self.container is None:
            logger.info("初始化转发器...")
            self.container = create_container(self.config)
        return self.container

    async def run(self) -> DrainStats:
        """
        运行应用，直到收到关闭信号

        Raises:
            StartupError: 日志源无法打开或游标定位失败
        """
        container = self.setup()
        started = time.monotonic()

        self._shutdown.install()
        try:
            await self.lifecycle.startup(container)
            self._log_status()
            stats = await container.drain_loop.run(self.token)
        finally:
            await self.lifecycle.shutdown(container)
            self._shutdown.uninstall()

        logger.info(
            "转发器已退出: reason={} uptime={} stats={}",
            self.token.reason,
            format_duration(time.monotonic() - started),
            stats.to_dict(),
        )
        return stats

    def _log_status(self) -> None:
        """输出运行状态"""
        logger.info(
            "转发器已启动: gelf={}:{} connection={} wait_timeout={}s",
            self.config.gelf_host,
            self.config.gelf_port,
            self.config.gelf_connection,
            self.config.wait_timeout,
        )


async def run_forwarder(config: ForwarderConfig) -> DrainStats:
    """运行转发器"""
    app = Application(config)
    return await app.run()
