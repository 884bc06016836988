"""
应用层

负责组装和启动转发器应用。
"""

from j2g.app.lifecycle import Lifecycle
from j2g.app.main import Application, ShutdownCoordinator
from j2g.app.wiring import Container

__all__ = ["Application", "Container", "Lifecycle", "ShutdownCoordinator"]
