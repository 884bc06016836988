"""
工具模块
"""

from j2g.utils.json import dumps, encode_record, loads
from j2g.utils.time import format_duration, now_usec, usec_to_datetime

__all__ = [
    "dumps",
    "loads",
    "encode_record",
    "now_usec",
    "usec_to_datetime",
    "format_duration",
]
