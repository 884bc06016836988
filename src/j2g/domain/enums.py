"""
转发器域枚举定义
"""

from enum import Enum


class AdvanceOutcome(str, Enum):
    """游标前进结果"""

    NO_NEW_ENTRY = "no_new_entry"  # 已到达末尾
    NEW_ENTRY = "new_entry"        # 游标指向新条目


class WaitEvent(str, Enum):
    """等待结果类型"""

    NO_CHANGE = "no_change"        # 超时，无变化
    APPENDED = "appended"          # 有新条目追加
    INVALIDATED = "invalidated"    # 日志文件轮转或被截断
    UNKNOWN = "unknown"            # 无法识别的返回码


class DrainState(str, Enum):
    """排空循环状态"""

    DRAINING = "draining"
    WAITING = "waiting"
    SHUTTING_DOWN = "shutting_down"


class GelfConnection(str, Enum):
    """GELF 连接类型（决定单个数据报的最大负载）"""

    WAN = "wan"
    LAN = "lan"
