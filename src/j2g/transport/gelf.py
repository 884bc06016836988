"""
GELF UDP 转发器

将序列化后的日志 zlib 压缩后通过 UDP 发送到 GELF 端点（如 Graylog）。
超过单个数据报上限的消息按 GELF 分片协议拆分：

    0x1e 0x0f | 8 字节消息 ID | 序号 (1 字节) | 总片数 (1 字节) | 数据

单条消息最多 128 片，超过则丢弃。
"""

import asyncio
import math
import os
import zlib
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from j2g.domain.enums import GelfConnection

if TYPE_CHECKING:
    from loguru import Logger

GELF_CHUNK_MAGIC = b"\x1e\x0f"
GELF_MAX_CHUNKS = 128

DEFAULT_MAX_CHUNK_SIZE_WAN = 1420
DEFAULT_MAX_CHUNK_SIZE_LAN = 8154


@dataclass
class GelfConfig:
    """GELF 端点配置"""

    host: str = "127.0.0.1"
    port: int = 12201
    connection: GelfConnection = GelfConnection.WAN
    max_chunk_size_wan: int = DEFAULT_MAX_CHUNK_SIZE_WAN
    max_chunk_size_lan: int = DEFAULT_MAX_CHUNK_SIZE_LAN
    compress: bool = True

    @property
    def max_chunk_size(self) -> int:
        """当前连接类型下单个分片的最大数据长度"""
        if GelfConnection(self.connection) == GelfConnection.LAN:
            return self.max_chunk_size_lan
        return self.max_chunk_size_wan


@dataclass
class GelfStats:
    """发送统计"""

    messages: int = 0
    datagrams: int = 0
    dropped: int = 0
    errors: int = 0


class _GelfProtocol(asyncio.DatagramProtocol):
    """UDP 协议回调，仅记录错误"""

    def __init__(self, forwarder: "GelfUdpForwarder"):
        self._forwarder = forwarder

    def error_received(self, exc: Exception) -> None:
        self._forwarder._on_error(exc)

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            self._forwarder._on_error(exc)


class GelfUdpForwarder:
    """
    GELF UDP 转发器

    send() 是非阻塞的即发即弃调用；投递失败只在这里记录日志，
    不会反馈给调用方。
    """

    def __init__(
        self,
        config: GelfConfig | None = None,
        log: "Logger | None" = None,
        message_id_factory: Callable[[], bytes] | None = None,
    ):
        self._config = config or GelfConfig()
        self._log = log or logger.bind(component="gelf")
        self._message_id_factory = message_id_factory or (lambda: os.urandom(8))
        self._transport: asyncio.DatagramTransport | None = None
        self._stats = GelfStats()

    @property
    def config(self) -> GelfConfig:
        return self._config

    @property
    def stats(self) -> GelfStats:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    async def start(self) -> None:
        """创建 UDP 端点"""
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _GelfProtocol(self),
            remote_addr=(self._config.host, self._config.port),
        )
        self._transport = transport
        self._log.info(
            "GELF 转发器已启动: {}:{} connection={} max_chunk_size={}",
            self._config.host,
            self._config.port,
            GelfConnection(self._config.connection).value,
            self._config.max_chunk_size,
        )

    async def stop(self) -> None:
        """关闭 UDP 端点"""
        if self._transport is None:
            return
        self._transport.close()
        self._transport = None
        self._log.info(
            "GELF 转发器已停止: messages={} datagrams={} dropped={} errors={}",
            self._stats.messages,
            self._stats.datagrams,
            self._stats.dropped,
            self._stats.errors,
        )

    def encode(self, payload: bytes) -> list[bytes]:
        """
        将一条消息编码为若干 UDP 数据报

        Returns:
            数据报列表；分片数超过上限时返回空列表
        """
        data = zlib.compress(payload) if self._config.compress else payload
        chunk_size = self._config.max_chunk_size
        if len(data) <= chunk_size:
            return [data]

        count = math.ceil(len(data) / chunk_size)
        if count > GELF_MAX_CHUNKS:
            return []

        message_id = self._message_id_factory()
        return [
            GELF_CHUNK_MAGIC
            + message_id
            + bytes((seq, count))
            + data[offset:offset + chunk_size]
            for seq, offset in enumerate(range(0, len(data), chunk_size))
        ]

    def send(self, payload: bytes) -> None:
        if not self.is_running:
            self._stats.dropped += 1
            self._log.warning("GELF 转发器未启动，丢弃消息 ({} 字节)", len(payload))
            return

        datagrams = self.encode(payload)
        if not datagrams:
            self._stats.dropped += 1
            self._log.warning(
                "消息过大，超过 {} 个分片，已丢弃 ({} 字节)", GELF_MAX_CHUNKS, len(payload)
            )
            return

        for datagram in datagrams:
            self._transport.sendto(datagram)
        self._stats.messages += 1
        self._stats.datagrams += len(datagrams)

    def _on_error(self, exc: Exception) -> None:
        self._stats.errors += 1
        self._log.warning("GELF 发送失败: {}", exc)
