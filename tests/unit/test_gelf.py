"""
GELF UDP 转发器测试
"""

import asyncio
import os
import zlib

import pytest

from j2g.domain.enums import GelfConnection
from j2g.transport.gelf import (
    GELF_CHUNK_MAGIC,
    GELF_MAX_CHUNKS,
    GelfConfig,
    GelfUdpForwarder,
)

MESSAGE_ID = b"\x01\x02\x03\x04\x05\x06\x07\x08"


def _forwarder(**kwargs) -> GelfUdpForwarder:
    return GelfUdpForwarder(GelfConfig(**kwargs), message_id_factory=lambda: MESSAGE_ID)


def _reassemble(datagrams: list[bytes]) -> bytes:
    chunks = {}
    for datagram in datagrams:
        assert datagram[:2] == GELF_CHUNK_MAGIC
        assert datagram[2:10] == MESSAGE_ID
        seq, count = datagram[10], datagram[11]
        assert count == len(datagrams)
        chunks[seq] = datagram[12:]
    return b"".join(chunks[i] for i in range(len(chunks)))


class TestGelfConfig:
    """分片大小"""

    def test_chunk_size_by_connection(self):
        assert GelfConfig().max_chunk_size == 1420
        assert GelfConfig(connection=GelfConnection.LAN).max_chunk_size == 8154
        assert GelfConfig(connection="lan", max_chunk_size_lan=4000).max_chunk_size == 4000


class TestGelfEncode:
    """编码"""

    def test_small_message_single_datagram(self):
        """小消息压缩后作为单个数据报发送"""
        payload = b'{"MESSAGE":"hello"}'

        datagrams = _forwarder().encode(payload)

        assert len(datagrams) == 1
        assert zlib.decompress(datagrams[0]) == payload

    def test_large_message_chunked(self):
        """超过分片大小的消息按序拆分"""
        payload = bytes(range(256)) * 20

        datagrams = _forwarder(compress=False, max_chunk_size_wan=1000).encode(payload)

        assert len(datagrams) == 6
        assert [d[10] for d in datagrams] == list(range(6))
        assert all(len(d) <= 12 + 1000 for d in datagrams)
        assert _reassemble(datagrams) == payload

    def test_compressed_chunks_reassemble(self):
        """压缩后的分片重组后可解压"""
        payload = os.urandom(4000)
        forwarder = _forwarder(max_chunk_size_wan=512)

        datagrams = forwarder.encode(payload)

        assert len(datagrams) > 1
        assert zlib.decompress(_reassemble(datagrams)) == payload

    def test_too_many_chunks_dropped(self):
        """超过 128 个分片时返回空列表"""
        forwarder = _forwarder(compress=False, max_chunk_size_wan=10)

        assert len(forwarder.encode(b"x" * 10 * GELF_MAX_CHUNKS)) == GELF_MAX_CHUNKS
        assert forwarder.encode(b"x" * (10 * GELF_MAX_CHUNKS + 1)) == []


class _Receiver(asyncio.DatagramProtocol):
    def __init__(self):
        self.queue: asyncio.Queue[bytes] = asyncio.Queue()

    def datagram_received(self, data, addr):
        self.queue.put_nowait(data)


class TestGelfSend:
    """发送"""

    def test_send_before_start_dropped(self, log_records):
        """未启动时丢弃并记录警告"""
        forwarder = _forwarder()

        forwarder.send(b"{}")

        assert forwarder.stats.dropped == 1
        assert any(r["level"].name == "WARNING" for r in log_records)

    @pytest.mark.asyncio
    async def test_send_over_loopback(self):
        """通过本地 UDP 发送并接收"""
        loop = asyncio.get_running_loop()
        transport, receiver = await loop.create_datagram_endpoint(
            _Receiver, local_addr=("127.0.0.1", 0)
        )
        port = transport.get_extra_info("sockname")[1]
        forwarder = _forwarder(port=port)

        try:
            await forwarder.start()
            assert forwarder.is_running
            forwarder.send(b'{"MESSAGE":"over the wire"}')
            data = await asyncio.wait_for(receiver.queue.get(), 2)
        finally:
            await forwarder.stop()
            transport.close()

        assert zlib.decompress(data) == b'{"MESSAGE":"over the wire"}'
        assert forwarder.stats.messages == 1
        assert forwarder.stats.datagrams == 1
        assert not forwarder.is_running

    @pytest.mark.asyncio
    async def test_oversized_message_dropped(self):
        """超出分片上限的消息被丢弃，不影响后续发送"""
        loop = asyncio.get_running_loop()
        transport, receiver = await loop.create_datagram_endpoint(
            _Receiver, local_addr=("127.0.0.1", 0)
        )
        port = transport.get_extra_info("sockname")[1]
        forwarder = _forwarder(port=port, compress=False, max_chunk_size_wan=10)

        try:
            await forwarder.start()
            forwarder.send(b"x" * 5000)
            forwarder.send(b"small")
            data = await asyncio.wait_for(receiver.queue.get(), 2)
        finally:
            await forwarder.stop()
            transport.close()

        assert data == b"small"
        assert forwarder.stats.dropped == 1
        assert forwarder.stats.messages == 1
