"""
转发器域模型
"""

from dataclasses import asdict, dataclass
from typing import Any

from j2g.domain.enums import WaitEvent

# 单条日志：字段名 -> 字段值
Record = dict[str, str]


@dataclass(frozen=True)
class WaitOutcome:
    """
    一次有界等待的结果

    只有 UNKNOWN 携带原始返回码。
    """

    event: WaitEvent
    code: int | None = None

    @classmethod
    def no_change(cls) -> "WaitOutcome":
        return cls(WaitEvent.NO_CHANGE)

    @classmethod
    def appended(cls) -> "WaitOutcome":
        return cls(WaitEvent.APPENDED)

    @classmethod
    def invalidated(cls) -> "WaitOutcome":
        return cls(WaitEvent.INVALIDATED)

    @classmethod
    def unknown(cls, code: int) -> "WaitOutcome":
        return cls(WaitEvent.UNKNOWN, code)


@dataclass
class DrainStats:
    """排空循环统计"""

    advanced: int = 0           # 游标成功前进次数
    forwarded: int = 0          # 已交给转发器的条目数
    fetch_dropped: int = 0      # 读取失败被跳过
    encode_dropped: int = 0     # 序列化失败被跳过
    advance_errors: int = 0     # 游标前进失败次数
    waits: int = 0              # 等待次数
    invalidations: int = 0      # 日志轮转通知次数
    unknown_events: int = 0     # 未知等待结果次数

    @property
    def dropped(self) -> int:
        return self.fetch_dropped + self.encode_dropped

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["dropped"] = self.dropped
        return data
