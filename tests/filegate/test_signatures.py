"""签名注册表：序号稳定、大小写不敏感、越界返回 None。"""

import pytest

from app.packages.filegate.services.signatures import SignatureRegistry, signature_registry


def test_indices_follow_registration_order():
    assert signature_registry.extensions == [".gif", ".png", ".jpeg", ".jpg", ".zip"]
    for position, entry in enumerate(signature_registry):
        assert entry.index == position
        assert signature_registry.index_of(entry.extension) == position
        assert signature_registry.extension_of(position) == entry.extension


@pytest.mark.parametrize("raw", [".png", ".PNG", "png", " Png "])
def test_index_lookup_is_case_insensitive(raw):
    assert signature_registry.index_of(raw) == 1
    assert raw in signature_registry


@pytest.mark.parametrize("index", [-1, 5, 1000])
def test_extension_of_out_of_range(index):
    assert signature_registry.extension_of(index) is None
    assert signature_registry.entry_at(index) is None


def test_signatures_and_lengths():
    assert len(signature_registry.signatures_of(".jpg")) == 3
    assert signature_registry.signatures_of(".png") == frozenset({b"\x89PNG\r\n\x1a\n"})
    assert signature_registry.max_signature_length(".png") == 8
    assert signature_registry.max_signature_length(".zip") == 6
    assert signature_registry.get(".gif").mime_type == "image/gif"


def test_unknown_extension():
    assert signature_registry.index_of(".exe") is None
    assert signature_registry.get(".exe") is None
    with pytest.raises(KeyError):
        signature_registry.signatures_of(".exe")


def test_registry_rejects_duplicates_and_empty_signatures():
    with pytest.raises(ValueError):
        SignatureRegistry([(".a", [b"A"], "x/a"), (".A", [b"B"], "x/a")])
    with pytest.raises(ValueError):
        SignatureRegistry([(".a", [], "x/a")])
