"""
JSON 工具
"""

from typing import Any

import ujson

from j2g.domain.errors import SerializationError
from j2g.domain.models import Record


def dumps(obj: Any, **kwargs) -> str:
    """JSON 序列化（保留非 ASCII 字符）"""
    return ujson.dumps(obj, ensure_ascii=False, **kwargs)


def loads(s: str | bytes) -> Any:
    """JSON 反序列化"""
    return ujson.loads(s)


def encode_record(record: Record) -> bytes:
    """
    将日志条目编码为转发器所需的 UTF-8 JSON

    Raises:
        SerializationError: 字段不是字符串，或无法编码
    """
    for key, value in record.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise SerializationError(
                f"字段类型无效: {key!r}={type(value).__name__}",
                details={"field": str(key)},
            )
    try:
        return dumps(record).encode("utf-8")
    except (TypeError, ValueError, OverflowError) as e:
        raise SerializationError(f"无法序列化条目: {e}") from e
