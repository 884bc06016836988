"""
转发器模块

- Forwarder: 排空循环依赖的转发器协议
- GelfUdpForwarder: GELF over UDP 实现
"""

from j2g.transport.base import Forwarder
from j2g.transport.gelf import (
    GELF_CHUNK_MAGIC,
    GELF_MAX_CHUNKS,
    GelfConfig,
    GelfStats,
    GelfUdpForwarder,
)

__all__ = [
    "Forwarder",
    "GelfConfig",
    "GelfStats",
    "GelfUdpForwarder",
    "GELF_CHUNK_MAGIC",
    "GELF_MAX_CHUNKS",
]
