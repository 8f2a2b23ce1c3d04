"""文件签名注册表：扩展名 ↔ 魔数前缀 ↔ 稳定序号。

序号按注册顺序从 0 开始连续分配，并直接出现在对外的下载地址中，
因此已发布的条目顺序不可调整，新格式只能追加在末尾。

签名参考 File Signatures Database (https://www.filesignatures.net/)。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

from app.packages.filegate.core.config import normalize_extension


@dataclass(frozen=True)
class SignatureEntry:
    extension: str
    signatures: frozenset[bytes]
    index: int
    mime_type: str

    @property
    def max_signature_length(self) -> int:
        return max(len(sig) for sig in self.signatures)

    def matches(self, head: bytes) -> bool:
        return any(head[: len(sig)] == sig for sig in self.signatures)


DEFAULT_SIGNATURES: Sequence[tuple[str, Sequence[bytes], str]] = (
    (".gif", (b"GIF8",), "image/gif"),
    (".png", (b"\x89PNG\r\n\x1a\n",), "image/png"),
    (".jpeg", (b"\xff\xd8\xff\xe0", b"\xff\xd8\xff\xe2", b"\xff\xd8\xff\xe3"), "image/jpeg"),
    (".jpg", (b"\xff\xd8\xff\xe0", b"\xff\xd8\xff\xe1", b"\xff\xd8\xff\xe8"), "image/jpeg"),
    (
        ".zip",
        (
            b"PK\x03\x04",
            b"PKLITE",
            b"PKSpX",
            b"PK\x05\x06",
            b"PK\x07\x08",
            b"WinZip",
        ),
        "application/zip",
    ),
)


class SignatureRegistry:
    """不可变的签名表：按序号的列表 + 按扩展名的索引，构建后只读。"""

    def __init__(self, definitions: Iterable[tuple[str, Sequence[bytes], str]]) -> None:
        entries: list[SignatureEntry] = []
        by_extension: dict[str, int] = {}
        for extension, signatures, mime_type in definitions:
            ext = normalize_extension(extension)
            if not ext:
                raise ValueError("signature entry requires an extension")
            if ext in by_extension:
                raise ValueError(f"duplicate signature entry for {ext}")
            sigs = frozenset(bytes(sig) for sig in signatures if sig)
            if not sigs:
                raise ValueError(f"signature entry {ext} has no magic prefix")
            by_extension[ext] = len(entries)
            entries.append(SignatureEntry(ext, sigs, len(entries), mime_type))
        self._entries: tuple[SignatureEntry, ...] = tuple(entries)
        self._by_extension = by_extension

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SignatureEntry]:
        return iter(self._entries)

    def __contains__(self, extension: object) -> bool:
        return isinstance(extension, str) and normalize_extension(extension) in self._by_extension

    @property
    def extensions(self) -> list[str]:
        return [entry.extension for entry in self._entries]

    def get(self, extension: str) -> Optional[SignatureEntry]:
        index = self.index_of(extension)
        return None if index is None else self._entries[index]

    def entry_at(self, index: int) -> Optional[SignatureEntry]:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def index_of(self, extension: str) -> Optional[int]:
        return self._by_extension.get(normalize_extension(extension))

    def extension_of(self, index: int) -> Optional[str]:
        entry = self.entry_at(index)
        return entry.extension if entry else None

    def signatures_of(self, extension: str) -> frozenset[bytes]:
        entry = self.get(extension)
        if entry is None:
            raise KeyError(extension)
        return entry.signatures

    def max_signature_length(self, extension: str) -> int:
        """判定所需读取的头部字节数：该扩展名下最长签名的长度。"""
        return max(len(sig) for sig in self.signatures_of(extension))


signature_registry = SignatureRegistry(DEFAULT_SIGNATURES)
