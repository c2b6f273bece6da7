"""TCP transport connecting file-server nodes."""

from __future__ import annotations

import logging
import queue
import socket
import threading
from typing import Callable

from dfscore.message import DefaultDecoder, Message, nop_handshake

log = logging.getLogger(__name__)

_QUEUE_SIZE = 1024


def _split_address(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"address {addr!r} has no port")
    return host.strip("[]"), int(port)


def _format_address(addr) -> str:
    return f"{addr[0]}:{addr[1]}"


class TCPPeer:
    """A connected remote node."""

    def __init__(self, conn: socket.socket, outbound: bool):
        self.conn = conn
        self.outbound = outbound
        self._stream_done = threading.Semaphore(0)

    @property
    def remote_addr(self) -> str:
        return _format_address(self.conn.getpeername())

    @property
    def local_addr(self) -> str:
        return _format_address(self.conn.getsockname())

    def send(self, data: bytes) -> None:
        self.conn.sendall(data)

    def write(self, data: bytes) -> int:
        self.conn.sendall(data)
        return len(data)

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; an empty result means the peer closed."""
        if size <= 0:
            return b""
        return self.conn.recv(size)

    def close_stream(self) -> None:
        """Let the read loop resume after a stream has been consumed."""
        self._stream_done.release()

    def _wait_for_stream(self) -> None:
        self._stream_done.acquire()

    def close(self) -> None:
        self.conn.close()


class TCPTransporter:
    """Listens for and dials TCP peers, queueing the messages they send."""

    def __init__(
        self,
        listen_address: str,
        handshake: Callable[[TCPPeer], None] | None = None,
        decoder: DefaultDecoder | None = None,
        on_peer: Callable[[TCPPeer], None] | None = None,
    ):
        self.listen_address = listen_address
        self.handshake = handshake or nop_handshake
        self.decoder = decoder or DefaultDecoder()
        self.on_peer = on_peer
        self._listener: socket.socket | None = None
        self._closed = False
        self._messages: queue.Queue[Message] = queue.Queue(maxsize=_QUEUE_SIZE)

    @property
    def bound_address(self) -> tuple[str, int] | None:
        """The address the listener is actually bound to, once listening."""
        return self._listener.getsockname()[:2] if self._listener else None

    def dial(self, addr: str) -> None:
        host, port = _split_address(addr)
        conn = socket.create_connection((host or "localhost", port))
        threading.Thread(target=self._handle_conn, args=(conn, True), daemon=True).start()

    def remote_addr(self) -> str:
        return self.listen_address

    def consume(self) -> queue.Queue[Message]:
        """Queue of messages received from peers."""
        return self._messages

    def listen_and_accept(self) -> None:
        host, port = _split_address(self.listen_address)
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            listener.bind((host, port))
            listener.listen()
        except OSError:
            listener.close()
            raise
        self._listener = listener
        self._closed = False
        threading.Thread(target=self._accept_loop, daemon=True).start()
        log.info("TCP transport listening on %s", self.listen_address)

    def close(self) -> None:
        self._closed = True
        if self._listener is not None:
            self._listener.close()

    def _accept_loop(self) -> None:
        while True:
            try:
                conn, _ = self._listener.accept()
            except OSError as exc:
                if self._closed:
                    return
                log.error("TCP accept error: %s", exc)
                continue
            threading.Thread(target=self._handle_conn, args=(conn, False), daemon=True).start()

    def _handle_conn(self, conn: socket.socket, outbound: bool) -> None:
        peer = TCPPeer(conn, outbound)
        try:
            remote = peer.remote_addr
            self.handshake(peer)
            if self.on_peer is not None:
                self.on_peer(peer)
            self._read_loop(peer, remote)
        except Exception as exc:
            log.warning("dropping peer connection: %s", exc)
        finally:
            conn.close()

    def _read_loop(self, peer: TCPPeer, remote: str) -> None:
        while True:
            try:
                msg = self.decoder.decode(peer)
            except EOFError:
                log.info("connection closed by peer %s", remote)
                return
            except ValueError as exc:
                log.warning("TCP decoding error: %s", exc)
                continue
            msg.from_addr = remote
            if msg.stream:
                log.debug("[%s] incoming stream, waiting", remote)
                peer._wait_for_stream()
                log.debug("[%s] stream closed, resuming read loop", remote)
                continue
            self._messages.put(msg)