"""
取消令牌

单次触发的关闭信号：由关闭协调器写入一次，由排空循环读取。
"""

import asyncio


class CancellationToken:
    """单次触发的取消令牌"""

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """触发原因（如信号名）"""
        return self._reason

    def set(self, reason: str | None = None) -> bool:
        """
        触发令牌

        Returns:
            True 表示本次调用完成了触发；已触发时返回 False
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        """等待令牌被触发"""
        await self._event.wait()
