"""上传内容校验：扩展名白名单、大小与魔数签名。

校验顺序固定为 白名单 → 空文件/大小 → 签名，先做廉价检查。
客户端可随意声明文件名，扩展名必须经过签名比对才能被信任。
本模块为纯函数逻辑，不读写磁盘也不输出日志。
"""

from __future__ import annotations

from typing import Iterable, Optional

from app.packages.filegate.core.config import normalize_extension
from app.packages.filegate.core.constants import (
    BYTES_PER_MEGABYTE,
    REASON_EMPTY,
    REASON_EXTENSION_NOT_PERMITTED,
    REASON_SIGNATURE_MISMATCH,
    REASON_TOO_LARGE,
)
from app.packages.filegate.core.exceptions import UploadValidationError
from app.packages.filegate.services.signatures import SignatureRegistry, signature_registry


def format_size_limit(max_size_bytes: int) -> str:
    return f"{max_size_bytes / BYTES_PER_MEGABYTE:.1f} MB"


class StreamValidator:
    def __init__(
        self,
        permitted_extensions: Iterable[str],
        registry: SignatureRegistry = signature_registry,
    ) -> None:
        permitted = {normalize_extension(ext) for ext in permitted_extensions if ext and ext.strip()}
        unknown = sorted(ext for ext in permitted if ext not in registry)
        if unknown:
            raise ValueError(f"permitted extensions without a registered signature: {', '.join(unknown)}")
        self.registry = registry
        self.permitted_extensions = frozenset(permitted)

    def is_permitted(self, extension: Optional[str]) -> bool:
        return bool(extension) and normalize_extension(extension) in self.permitted_extensions

    def ensure_permitted(self, extension: Optional[str]) -> str:
        if not self.is_permitted(extension):
            raise UploadValidationError(REASON_EXTENSION_NOT_PERMITTED, "不支持的文件类型")
        return normalize_extension(extension)

    def ensure_within_limit(self, size: int, max_size_bytes: int) -> None:
        """流式读取时的增量检查：累计字节数一旦超过上限立即拒绝。"""
        if size > max_size_bytes:
            raise UploadValidationError(
                REASON_TOO_LARGE, f"文件大小超过限制 {format_size_limit(max_size_bytes)}"
            )

    def validate(self, extension: Optional[str], content: bytes, max_size_bytes: int) -> bytes:
        """校验通过时原样返回 ``content``，否则抛出 :class:`UploadValidationError`。"""
        ext = self.ensure_permitted(extension)
        if len(content) == 0:
            raise UploadValidationError(REASON_EMPTY, "文件内容为空")
        self.ensure_within_limit(len(content), max_size_bytes)

        entry = self.registry.get(ext)
        head = content[: entry.max_signature_length]
        if not entry.matches(head):
            raise UploadValidationError(REASON_SIGNATURE_MISMATCH, "文件签名与扩展名不匹配")
        return content
