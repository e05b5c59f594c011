"""Tests for WebSocketChannel and ASGI event classification."""

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect, WebSocketState

from fakes import FakeWebSocket, disconnect, receive_bytes, receive_text
from huproxy.models.enums import MessageKind
from huproxy.tunnel.channel import WebSocketChannel, classify_message
from huproxy.tunnel.errors import ChannelClosedError, UpgradeFailed


class TestClassifyMessage:
    def test_binary(self):
        message = classify_message(receive_bytes(b"\x00data"))
        assert message.kind == MessageKind.BINARY
        assert message.payload == b"\x00data"
        assert message.code is None

    def test_empty_binary_is_still_binary(self):
        assert classify_message(receive_bytes(b"")).kind == MessageKind.BINARY

    def test_text(self):
        message = classify_message(receive_text("hello"))
        assert message.kind == MessageKind.TEXT
        assert message.payload == b"hello"

    @pytest.mark.parametrize(
        "code, kind",
        [
            (1000, MessageKind.CLOSE_NORMAL),
            (1006, MessageKind.CLOSE_ABNORMAL),
            (1001, MessageKind.OTHER),
            (1011, MessageKind.OTHER),
        ],
    )
    def test_disconnect_codes(self, code, kind):
        message = classify_message(disconnect(code))
        assert message.kind == kind
        assert message.code == code

    def test_disconnect_without_code_is_normal(self):
        message = classify_message({"type": "websocket.disconnect"})
        assert message.kind == MessageKind.CLOSE_NORMAL

    def test_unknown_event(self):
        assert classify_message({"type": "websocket.ping"}).kind == MessageKind.OTHER
        assert (
            classify_message({"type": "websocket.receive"}).kind == MessageKind.OTHER
        )


class TestUpgrade:
    @pytest.mark.asyncio
    async def test_accepts_websocket(self):
        websocket = FakeWebSocket()

        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)

        assert websocket.application_state == WebSocketState.CONNECTED
        assert channel.remote_address == "203.0.113.9:50000"
        assert not channel.closed

    @pytest.mark.asyncio
    async def test_handshake_timeout(self):
        websocket = FakeWebSocket(accept_delay=1.0)

        with pytest.raises(UpgradeFailed, match="timed out"):
            await WebSocketChannel.upgrade(websocket, timeout=0.01)

    @pytest.mark.asyncio
    async def test_client_gone_during_handshake(self):
        websocket = FakeWebSocket(accept_error=WebSocketDisconnect(1006))

        with pytest.raises(UpgradeFailed) as exc_info:
            await WebSocketChannel.upgrade(websocket, timeout=1.0)
        assert exc_info.value.status_code == 502

    def test_unknown_remote_address(self):
        channel = WebSocketChannel(FakeWebSocket(client=None))
        assert channel.remote_address == "unknown"


class TestReadMessage:
    @pytest.mark.asyncio
    async def test_reads_until_peer_close(self):
        websocket = FakeWebSocket([receive_bytes(b"a"), disconnect(1000)])
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)

        first = await channel.read_message()
        close = await channel.read_message()

        assert first.payload == b"a"
        assert close.kind == MessageKind.CLOSE_NORMAL
        assert channel.peer_closed
        with pytest.raises(ChannelClosedError):
            await channel.read_message()

    @pytest.mark.asyncio
    async def test_local_close_unblocks_pending_read(self):
        channel = await WebSocketChannel.upgrade(FakeWebSocket(), timeout=1.0)
        pending = asyncio.create_task(channel.read_message())
        await asyncio.sleep(0.01)
        assert not pending.done()

        await channel.close()

        with pytest.raises(ChannelClosedError):
            await asyncio.wait_for(pending, timeout=1.0)

    @pytest.mark.asyncio
    async def test_receive_error_becomes_channel_closed(self):
        websocket = FakeWebSocket()
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)

        async def broken_receive():
            raise RuntimeError('WebSocket is not connected. Need to call "accept".')

        websocket.receive = broken_receive

        with pytest.raises(ChannelClosedError):
            await channel.read_message()
        assert channel.peer_closed


class TestWrite:
    @pytest.mark.asyncio
    async def test_write_message_sends_binary(self):
        websocket = FakeWebSocket()
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)

        await channel.write_message(b"one")
        await channel.write_message(b"")

        assert websocket.sent == [b"one", b""]

    @pytest.mark.asyncio
    async def test_write_after_close_fails(self):
        channel = await WebSocketChannel.upgrade(FakeWebSocket(), timeout=1.0)
        await channel.close()

        with pytest.raises(ChannelClosedError):
            await channel.write_message(b"late")

    @pytest.mark.asyncio
    async def test_send_error_becomes_channel_closed(self):
        websocket = FakeWebSocket()
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)
        websocket.send_error = OSError("broken pipe")

        with pytest.raises(ChannelClosedError, match="broken pipe"):
            await channel.write_message(b"data")

    @pytest.mark.asyncio
    async def test_write_close_sends_code(self):
        websocket = FakeWebSocket()
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)

        await channel.write_close(1000, timeout=1.0)

        assert websocket.close_codes == [1000]
        with pytest.raises(ChannelClosedError):
            await channel.write_close(1000, timeout=1.0)

    @pytest.mark.asyncio
    async def test_write_close_after_peer_close_fails(self):
        websocket = FakeWebSocket([disconnect(1000)])
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)
        await channel.read_message()

        with pytest.raises(ChannelClosedError):
            await channel.write_close(1000, timeout=1.0)
        assert websocket.close_codes == []


class TestClose:
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        websocket = FakeWebSocket()
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)

        await channel.close(1011)
        await channel.close(1000)

        assert channel.closed
        assert websocket.close_codes == [1011]

    @pytest.mark.asyncio
    async def test_close_after_peer_close_sends_nothing(self):
        websocket = FakeWebSocket([disconnect(1006)])
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)
        await channel.read_message()

        await channel.close()

        assert websocket.close_codes == []

    @pytest.mark.asyncio
    async def test_close_after_close_frame_sends_nothing(self):
        websocket = FakeWebSocket()
        channel = await WebSocketChannel.upgrade(websocket, timeout=1.0)
        await channel.write_close(1000, timeout=1.0)

        await channel.close()

        assert websocket.close_codes == [1000]
