"""
域层

转发器的枚举、错误和数据模型。
"""

from j2g.domain.enums import AdvanceOutcome, DrainState, GelfConnection, WaitEvent
from j2g.domain.errors import (
    ConfigError,
    ForwarderError,
    LogSourceError,
    SerializationError,
    StartupError,
    WaiterError,
)
from j2g.domain.models import DrainStats, Record, WaitOutcome

__all__ = [
    # 枚举
    "AdvanceOutcome",
    "DrainState",
    "GelfConnection",
    "WaitEvent",
    # 错误
    "ForwarderError",
    "ConfigError",
    "StartupError",
    "LogSourceError",
    "SerializationError",
    "WaiterError",
    # 模型
    "DrainStats",
    "Record",
    "WaitOutcome",
]
