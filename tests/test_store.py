import io

import pytest

from dfscore.cipher import copy_encrypt, new_encryption_key
from dfscore.store import (
    DEFAULT_ROOT,
    PathKey,
    Store,
    default_path_transform,
    hash_path_transform,
)


@pytest.fixture
def store(tmp_path):
    s = Store(str(tmp_path / "root"), hash_path_transform)
    yield s
    s.clear()


def test_path_transform():
    path_key = hash_path_transform("test49")
    assert path_key.file_name == "241db62d4cb712d490d6c6fdd81c4682"
    assert path_key.path_name == "241db6/2d4cb7/12d490/d6c6fd/d81c46"


def test_write(store):
    for i in range(50):
        key = f"test{i}"
        assert store.write(key, io.BytesIO(b"Hello World")) == 11
        assert store.has(key)


def test_read(store):
    for i in range(50):
        key = f"test{i}"
        store.write(key, io.BytesIO(b"Hello World"))
        size, f = store.read(key)
        with f:
            assert f.read() == b"Hello World"
        assert size == 11


def test_delete(store):
    for i in range(50):
        key = f"test{i}"
        store.write(key, io.BytesIO(b"Hello World"))
        store.delete(key)
        assert not store.has(key)


def test_has_unknown_key(store):
    assert not store.has("missing")


def test_read_missing_raises(store):
    with pytest.raises(FileNotFoundError):
        store.read("missing")


def test_clear_removes_everything(store, tmp_path):
    store.write("a", io.BytesIO(b"x"))
    store.clear()
    assert not (tmp_path / "root").exists()
    assert not store.has("a")


def test_write_decrypt_round_trip(store):
    key = new_encryption_key()
    enc = io.BytesIO()
    copy_encrypt(key, io.BytesIO(b"secret data"), enc)
    enc.seek(0)
    store.write_decrypt("file", key, enc)
    _, f = store.read("file")
    with f:
        assert f.read() == b"secret data"


def test_default_transform_and_root():
    s = Store()
    assert s.root == DEFAULT_ROOT
    assert s.path_transform("abc") == PathKey("abc", "abc")
    assert default_path_transform("k").full_path() == "k/k"


def test_base_folder():
    assert PathKey("aa/bb/cc", "f").base_folder() == "aa"
    with pytest.raises(ValueError):
        PathKey("", "f").base_folder()


def test_default_transform_storage(tmp_path):
    s = Store(str(tmp_path), default_path_transform)
    s.write("note", io.BytesIO(b"Hello World"))
    assert (tmp_path / "note" / "note").read_bytes() == b"Hello World"