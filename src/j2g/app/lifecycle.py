"""
生命周期管理

负责转发器组件的启动和关闭顺序。
"""

from typing import TYPE_CHECKING

from loguru import logger

from j2g.app.wiring import Container
from j2g.domain.errors import StartupError

if TYPE_CHECKING:
    from loguru import Logger


class Lifecycle:
    """
    生命周期管理器

    启动顺序：转发器 -> 游标定位
    关闭顺序：日志源 -> 转发器
    """

    def __init__(self, log: "Logger | None" = None):
        self._log = log or logger.bind(component="lifecycle")
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def startup(self, container: Container) -> None:
        """
        执行启动流程

        任一步骤失败都会先关闭已打开的资源，再向上抛出 StartupError。
        """
        self._log.info("开始启动转发器...")
        try:
            await self._start_forwarder(container)
            container.positioner.position(container.source)
        except Exception as e:
            self._log.error("启动失败: {}", e)
            await self._release(container)
            raise

        self._running = True
        self._log.info("转发器启动完成")

    async def shutdown(self, container: Container) -> None:
        """执行关闭流程（可重复调用）"""
        if not self._running:
            return
        self._running = False

        await self._release(container)
        self._log.info("转发器已关闭")

    async def _start_forwarder(self, container: Container) -> None:
        config = container.config
        try:
            await container.forwarder.start()
        except OSError as e:
            raise StartupError(
                f"无法创建 GELF 端点 {config.gelf_host}:{config.gelf_port}: {e}",
                details={"host": config.gelf_host, "port": config.gelf_port},
            ) from e

    async def _release(self, container: Container) -> None:
        """释放日志源和转发器"""
        # 排空循环正常结束时已关闭日志源，这里兜底启动失败的情况
        container.source.close()
        await container.forwarder.stop()
