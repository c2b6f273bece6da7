import io

import pytest

from dfscore.cipher import (
    BLOCK_SIZE,
    copy_decrypt,
    copy_encrypt,
    hash_key,
    new_encryption_key,
)


def test_encrypt_decrypt_round_trip():
    data = b"Hello world"
    key = new_encryption_key()
    dst = io.BytesIO()
    copy_encrypt(key, io.BytesIO(data), dst)
    dst.seek(0)
    out = io.BytesIO()
    copy_decrypt(key, dst, out)
    assert out.getvalue() == data


def test_encrypt_reports_size_with_iv():
    data = b"Hello world"
    dst = io.BytesIO()
    n = copy_encrypt(new_encryption_key(), io.BytesIO(data), dst)
    assert n == len(data) + BLOCK_SIZE
    assert len(dst.getvalue()) == n


def test_ciphertext_differs_from_plaintext_and_between_runs():
    data = b"Hello world" * 10
    key = new_encryption_key()
    first, second = io.BytesIO(), io.BytesIO()
    copy_encrypt(key, io.BytesIO(data), first)
    copy_encrypt(key, io.BytesIO(data), second)
    assert data not in first.getvalue()
    assert first.getvalue() != second.getvalue()


def test_large_round_trip_spanning_chunks():
    data = bytes(range(256)) * 400
    key = new_encryption_key()
    enc = io.BytesIO()
    copy_encrypt(key, io.BytesIO(data), enc)
    enc.seek(0)
    out = io.BytesIO()
    n = copy_decrypt(key, enc, out)
    assert out.getvalue() == data
    assert n == len(data) + BLOCK_SIZE


def test_wrong_key_gives_wrong_plaintext():
    data = b"Hello world"
    enc = io.BytesIO()
    copy_encrypt(new_encryption_key(), io.BytesIO(data), enc)
    enc.seek(0)
    out = io.BytesIO()
    copy_decrypt(new_encryption_key(), enc, out)
    assert out.getvalue() != data
    assert len(out.getvalue()) == len(data)


def test_invalid_key_length_raises():
    with pytest.raises(ValueError):
        copy_encrypt(b"short", io.BytesIO(b"data"), io.BytesIO())


def test_decrypt_without_iv_raises():
    with pytest.raises(ValueError):
        copy_decrypt(new_encryption_key(), io.BytesIO(b"abc"), io.BytesIO())


def test_new_key_is_32_random_bytes():
    a, b = new_encryption_key(), new_encryption_key()
    assert len(a) == 32
    assert a != b


def test_hash_key_is_md5_hex():
    assert hash_key("test49") == "241db62d4cb712d490d6c6fdd81c4682"