"""Key hashing and AES-CTR stream encryption with a prepended IV."""

from __future__ import annotations

import hashlib
import os
from typing import BinaryIO, Protocol

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

BLOCK_SIZE = 16
_CHUNK_SIZE = 32 * 1024


class _Reader(Protocol):
    def read(self, size: int) -> bytes: ...


class _Writer(Protocol):
    def write(self, data: bytes) -> object: ...


def hash_key(key: str) -> str:
    """Return the hex MD5 digest of ``key``."""
    return hashlib.md5(key.encode()).hexdigest()


def new_encryption_key() -> bytes:
    """Return a fresh random 32-byte AES key."""
    return os.urandom(32)


def _ctr(key: bytes, iv: bytes) -> Cipher:
    return Cipher(algorithms.AES(key), modes.CTR(iv))


def _copy_stream(transform, src: _Reader, dst: _Writer) -> int:
    total = BLOCK_SIZE
    while chunk := src.read(_CHUNK_SIZE):
        dst.write(transform.update(chunk))
        total += len(chunk)
    return total


def copy_encrypt(key: bytes, src: _Reader | BinaryIO, dst: _Writer | BinaryIO) -> int:
    """Encrypt ``src`` into ``dst``, prefixed by a random IV.

    Returns the number of bytes written, IV included.
    """
    iv = os.urandom(BLOCK_SIZE)
    encryptor = _ctr(key, iv).encryptor()
    dst.write(iv)
    return _copy_stream(encryptor, src, dst)


def copy_decrypt(key: bytes, src: _Reader | BinaryIO, dst: _Writer | BinaryIO) -> int:
    """Decrypt an IV-prefixed stream from ``src`` into ``dst``.

    Returns the plaintext length plus the IV size.
    """
    cipher_algorithm = algorithms.AES(key)
    iv = src.read(BLOCK_SIZE)
    if len(iv) < BLOCK_SIZE:
        raise ValueError("stream too short to hold an initialisation vector")
    decryptor = Cipher(cipher_algorithm, modes.CTR(iv)).decryptor()
    return _copy_stream(decryptor, src, dst)