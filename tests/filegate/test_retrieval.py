import asyncio
import os

import pytest

from app.packages.filegate.core.exceptions import MalformedRequestError, StoredFileNotFoundError
from app.packages.filegate.services.retrieval import RetrievalService
from multipart_helpers import GIF_BYTES, PNG_BYTES


@pytest.fixture()
def retrieval(store):
    return RetrievalService(store)


def test_fetch_returns_content_and_mime_type(store, retrieval):
    asyncio.run(store.write("abc.png", PNG_BYTES))
    stored = asyncio.run(retrieval.fetch(1, "abc"))
    assert stored.content == PNG_BYTES
    assert stored.mime_type == "image/png"
    assert stored.file_name == "abc.png"


def test_fetch_uses_extension_from_index(store, retrieval):
    asyncio.run(store.write("abc.gif", GIF_BYTES))
    with pytest.raises(StoredFileNotFoundError) as exc_info:
        asyncio.run(retrieval.fetch(1, "abc"))
    assert exc_info.value.reason == "file"
    assert asyncio.run(retrieval.fetch(0, "abc")).mime_type == "image/gif"


def test_unknown_index_is_checked_before_name(retrieval):
    with pytest.raises(StoredFileNotFoundError) as exc_info:
        asyncio.run(retrieval.fetch(99, "../etc"))
    assert exc_info.value.reason == "extension"


@pytest.mark.parametrize("base_name", ["..", "../etc", "a.b", "", "a/b", "a" * 129])
def test_traversal_names_are_rejected(retrieval, base_name):
    with pytest.raises(MalformedRequestError):
        asyncio.run(retrieval.fetch(1, base_name))


def test_atomic_write_leaves_no_partial_files(store, storage_root):
    asyncio.run(store.write("abc.png", PNG_BYTES))
    asyncio.run(store.write("abc.png", GIF_BYTES))
    assert os.listdir(storage_root) == ["abc.png"]
    assert (storage_root / "abc.png").read_bytes() == GIF_BYTES
    assert store.exists("abc.png")


@pytest.mark.parametrize("file_name", ["../x.png", "sub/x.png", ".", ".."])
def test_store_rejects_paths_outside_root(store, file_name):
    with pytest.raises(MalformedRequestError):
        store.resolve(file_name)


def test_discard_ignores_missing_files(store, storage_root):
    asyncio.run(store.write("abc.png", PNG_BYTES))
    store.discard("abc.png")
    store.discard("abc.png")
    assert os.listdir(storage_root) == []
