"""
依赖注入容器

负责组装转发器的所有组件。
"""

from dataclasses import dataclass

from loguru import logger

from j2g.config import ForwarderConfig
from j2g.engine.drain import DrainLoop
from j2g.engine.positioner import CursorPositioner
from j2g.engine.waiter import Waiter
from j2g.source.base import LogSource
from j2g.source.journal import JournalSource
from j2g.transport.gelf import GelfUdpForwarder


@dataclass
class Container:
    """依赖注入容器"""

    config: ForwarderConfig
    source: LogSource
    forwarder: GelfUdpForwarder
    positioner: CursorPositioner
    drain_loop: DrainLoop


def create_container(
    config: ForwarderConfig,
    source: LogSource | None = None,
    forwarder: GelfUdpForwarder | None = None,
) -> Container:
    """
    创建并配置依赖容器

    Args:
        config: 转发器配置
        source: 日志源（默认打开本机 journal）
        forwarder: 转发器（默认按配置创建 GELF UDP 转发器）

    Raises:
        StartupError: journal 无法打开
    """
    if source is None:
        source = JournalSource.open(
            local_only=config.journal_local_only,
            directory=config.journal_directory,
            log=logger.bind(component="journal"),
        )

    if forwarder is None:
        forwarder = GelfUdpForwarder(config.gelf_config(), log=logger.bind(component="gelf"))

    drain_log = logger.bind(component="drain")
    drain_loop = DrainLoop(
        source=source,
        forwarder=forwarder,
        waiter=Waiter(source, log=logger.bind(component="waiter")),
        wait_timeout=config.wait_timeout,
        advance_error_limit=config.advance_error_limit,
        log=drain_log,
    )

    return Container(
        config=config,
        source=source,
        forwarder=forwarder,
        positioner=CursorPositioner(log=logger.bind(component="positioner")),
        drain_loop=drain_loop,
    )
