"""
转发器协议

排空循环只依赖 send()：逐条交付已序列化的日志。
分片、压缩、重试等由具体转发器负责。
"""

from typing import Protocol


class Forwarder(Protocol):
    """转发器协议"""

    def send(self, payload: bytes) -> None:
        """尽力发送一条已序列化的日志（不返回投递结果）"""
        ...
