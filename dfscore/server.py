"""A file server node that keeps files on disk and replicates them to its peers."""

from __future__ import annotations

import io
import logging
import queue
import struct
import threading
import time
from typing import Iterable

from dfscore.cipher import BLOCK_SIZE, copy_encrypt, hash_key, new_encryption_key
from dfscore.message import (
    INCOMING_MESSAGE,
    INCOMING_STREAM,
    DataMessage,
    GetMessagePayload,
    StoreMessagePayload,
    decode_data_message,
    encode_data_message,
)
from dfscore.store import PathTransform, Store

log = logging.getLogger(__name__)

_SIZE_HEADER = struct.Struct("<q")
_CHUNK_SIZE = 32 * 1024
_GET_WAIT = 0.5
_STORE_WAIT = 0.005
_POLL_INTERVAL = 0.1


class _LimitedReader:
    """Reads at most ``limit`` bytes from an underlying reader."""

    def __init__(self, reader, limit: int):
        self._reader = reader
        self._remaining = max(limit, 0)

    def read(self, size: int = -1) -> bytes:
        if self._remaining <= 0:
            return b""
        if size is None or size < 0 or size > self._remaining:
            size = self._remaining
        data = self._reader.read(size)
        self._remaining -= len(data)
        return data


class _MultiWriter:
    """Writes every chunk to each of several writers."""

    def __init__(self, writers: Iterable):
        self._writers = list(writers)

    def write(self, data: bytes) -> int:
        for writer in self._writers:
            writer.write(data)
        return len(data)


def _read_exact(reader, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = reader.read(size - len(buf))
        if not chunk:
            raise EOFError("stream ended early")
        buf += chunk
    return bytes(buf)


class FileServer:
    """Stores files locally, replicates them to peers and fetches them back."""

    def __init__(
        self,
        storage_root: str,
        transporter,
        path_transform: PathTransform | None = None,
        bootstrap_nodes: Iterable[str] | None = None,
        enc_key: bytes | None = None,
    ):
        self.storage_root = storage_root
        self.transporter = transporter
        self.bootstrap_nodes = list(bootstrap_nodes or [])
        self.enc_key = enc_key if enc_key is not None else new_encryption_key()
        self.local_store = Store(storage_root, path_transform)
        self._peers: dict[str, object] = {}
        self._peer_lock = threading.Lock()
        self._quit = threading.Event()

    @property
    def peers(self) -> dict[str, object]:
        """A snapshot of the connected peers keyed by remote address."""
        with self._peer_lock:
            return dict(self._peers)

    def start(self) -> None:
        """Listen, connect to bootstrap nodes and serve until stopped."""
        self.transporter.listen_and_accept()
        self._bootstrap_network()
        self._loop()

    def stop(self) -> None:
        self._quit.set()

    def get(self, key: str):
        """Return ``(size, file)`` for ``key``, fetching it from peers if needed."""
        if self.local_store.has(key):
            log.info("serving %s from local file", key)
            return self.local_store.read(key)

        log.info(
            "[%s] file not found locally, searching the network",
            self.transporter.remote_addr(),
        )
        self._broadcast(DataMessage(GetMessagePayload(hash_key(key))))
        time.sleep(_GET_WAIT)

        for peer in self.peers.values():
            try:
                (size,) = _SIZE_HEADER.unpack(_read_exact(peer, _SIZE_HEADER.size))
                received = self.local_store.write_decrypt(
                    key, self.enc_key, _LimitedReader(peer, size)
                )
            except (OSError, ValueError, EOFError) as exc:
                log.debug("peer could not serve %s: %s", key, exc)
                continue
            log.info(
                "[%s] received %d bytes over the network",
                self.transporter.remote_addr(),
                received,
            )
            peer.close_stream()
            return self.local_store.read(key)

        raise FileNotFoundError("couldn't find file in any of the peers")

    def store(self, key: str, reader) -> None:
        """Store ``reader``'s content locally and send it, encrypted, to every peer."""
        data = reader.read()
        written = self.local_store.write(key, io.BytesIO(data))

        # The receivers get the IV prepended to the encrypted content.
        self._broadcast(
            DataMessage(StoreMessagePayload(hash_key(key), written + BLOCK_SIZE))
        )
        time.sleep(_STORE_WAIT)

        writer = _MultiWriter(self.peers.values())
        writer.write(bytes([INCOMING_STREAM]))
        try:
            copy_encrypt(self.enc_key, io.BytesIO(data), writer)
        except OSError as exc:
            raise OSError(f"failed to send file content to peers: {exc}") from exc

    def delete(self, key: str) -> None:
        """Delete ``key`` from the local store only."""
        if not self.local_store.has(key):
            raise FileNotFoundError("file not found")
        self.local_store.delete(key)

    def on_peer(self, peer) -> None:
        with self._peer_lock:
            self._peers[peer.remote_addr] = peer
        log.info("connected with remote %s", peer.local_addr)

    def _peer(self, addr: str):
        with self._peer_lock:
            try:
                return self._peers[addr]
            except KeyError:
                raise LookupError(
                    f"peer ({addr}) could not be found in the peer list"
                ) from None

    def _broadcast(self, msg: DataMessage) -> None:
        frame = bytes([INCOMING_MESSAGE]) + encode_data_message(msg)
        _MultiWriter(self.peers.values()).write(frame)

    def _loop(self) -> None:
        messages = self.transporter.consume()
        try:
            while not self._quit.is_set():
                try:
                    rpc = messages.get(timeout=_POLL_INTERVAL)
                except queue.Empty:
                    continue
                try:
                    msg = decode_data_message(rpc.payload)
                except ValueError as exc:
                    log.error("dropping undecodable message from %s: %s", rpc.from_addr, exc)
                    continue
                try:
                    self._handle_message(rpc.from_addr, msg)
                except (OSError, LookupError, ValueError, EOFError) as exc:
                    log.warning(
                        "[%s] handle message error: %s",
                        self.transporter.remote_addr(),
                        exc,
                    )
        finally:
            log.info("[%s] file server stopped", self.transporter.remote_addr())
            self.transporter.close()

    def _handle_message(self, from_addr: str, msg: DataMessage) -> None:
        payload = msg.payload
        if isinstance(payload, StoreMessagePayload):
            self._handle_message_store(from_addr, payload)
        elif isinstance(payload, GetMessagePayload):
            self._handle_message_get(from_addr, payload)

    def _handle_message_store(self, from_addr: str, payload: StoreMessagePayload) -> None:
        peer = self._peer(from_addr)
        self.local_store.write(payload.key, _LimitedReader(peer, payload.size))
        log.info(
            "[%s] data received and stored to disk: %s",
            self.transporter.remote_addr(),
            payload,
        )
        peer.close_stream()

    def _handle_message_get(self, from_addr: str, payload: GetMessagePayload) -> None:
        if not self.local_store.has(payload.key):
            raise FileNotFoundError("requested to stream file but it doesn't exist")
        peer = self._peer(from_addr)
        size, f = self.local_store.read(payload.key)
        with f:
            peer.send(bytes([INCOMING_STREAM]))
            peer.send(_SIZE_HEADER.pack(size))
            while chunk := f.read(_CHUNK_SIZE):
                peer.send(chunk)
        log.info("[%s] wrote %d bytes to peer", self.transporter.remote_addr(), size)

    def _bootstrap_network(self) -> None:
        def dial(node: str) -> None:
            log.info("attempting to connect with remote %s", node)
            try:
                self.transporter.dial(node)
            except (OSError, ValueError) as exc:
                log.error("dial error: %s", exc)

        threads = [
            threading.Thread(target=dial, args=(node,), daemon=True)
            for node in self.bootstrap_nodes
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()