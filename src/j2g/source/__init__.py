"""
日志源模块
"""

from j2g.source.base import INDEFINITE_WAIT, LogSource
from j2g.source.journal import JournalSource

__all__ = ["INDEFINITE_WAIT", "LogSource", "JournalSource"]
