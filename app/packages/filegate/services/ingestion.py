"""上传接收服务：把 multipart 段序列折叠为一次上传的结果。

- 文件段：HTML 转义展示名 → 取扩展名 → 生成随机文件名 → 流式计量 → 签名校验 → 原子落盘；
- 表单段：按字段名写入 ``UploadRecord``，无法解析的 ``userId``/``isPrimary`` 静默忽略；
- 任一文件校验失败立即终止整个请求，本次已写入的文件全部回滚。
"""

from __future__ import annotations

import html
import os
import re
import uuid
from dataclasses import dataclass, field, replace
from typing import AsyncIterable, Optional

from app.packages.filegate.core.constants import (
    COMMENT_FIELD,
    IS_PRIMARY_FIELD,
    REASON_NO_FILE,
    REASON_TOO_LARGE,
    USER_ID_FIELD,
)
from app.packages.filegate.core.exceptions import UploadValidationError
from app.packages.filegate.core.logger import logger
from app.packages.filegate.services.multipart import ContentDisposition, MultipartReader, MultipartSection
from app.packages.filegate.services.storage import LocalFileStore, generate_base_name
from app.packages.filegate.services.validation import StreamValidator

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INTEGER_PATTERN = re.compile(r"^\s*[+-]?[0-9]+\s*$")


def parse_int32(value: str) -> Optional[int]:
    if not _INTEGER_PATTERN.match(value):
        return None
    number = int(value)
    return number if _INT32_MIN <= number <= _INT32_MAX else None


def parse_bool(value: str) -> Optional[bool]:
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return None


def display_name_for(client_file_name: str) -> str:
    """客户端文件名不可信：只保留最后一级名称，并做 HTML 转义后用于展示。"""
    base = os.path.basename(client_file_name.replace("\\", "/"))
    return html.escape(base)


def extension_of(display_name: str) -> str:
    """取最后一个点之后的部分；``.png`` 这类只有扩展名的文件名同样视为 ``.png``。"""
    dot = display_name.rfind(".")
    if dot < 0 or dot == len(display_name) - 1:
        return ""
    return display_name[dot:].lower()


@dataclass(frozen=True)
class UploadRecord:
    generated_file_name: str = ""
    display_file_name: str = ""
    user_id: Optional[int] = None
    comment: Optional[str] = None
    is_primary: bool = False
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class UploadResult:
    record: UploadRecord
    base_name: str
    extension: str


class MultipartIngester:
    def __init__(
        self,
        store: LocalFileStore,
        validator: StreamValidator,
        *,
        max_size_bytes: int,
        max_field_bytes: int,
    ) -> None:
        self.store = store
        self.validator = validator
        self.max_size_bytes = max_size_bytes
        self.max_field_bytes = max_field_bytes

    async def ingest(
        self,
        body: AsyncIterable[bytes],
        boundary: bytes | str,
        *,
        max_size_bytes: Optional[int] = None,
    ) -> UploadResult:
        limit = self.max_size_bytes if max_size_bytes is None else max_size_bytes
        record = UploadRecord()
        written: list[str] = []
        accepted: Optional[tuple[str, str]] = None

        try:
            async for section in MultipartReader(body, boundary):
                disposition = section.content_disposition
                if disposition is None:
                    continue
                if disposition.is_file:
                    record, base_name, extension = await self._ingest_file(
                        section, disposition, record, limit, written
                    )
                    accepted = (base_name, extension)
                elif disposition.is_form_field:
                    record = await self._ingest_field(section, disposition, record)
        except BaseException:
            # 包括客户端断开与任务取消：本次请求写入的文件一律不保留
            for file_name in written:
                self.store.discard(file_name)
            raise

        if accepted is None:
            logger.warning("Upload rejected: no file section accepted (correlation_id=%s)", record.correlation_id)
            raise UploadValidationError(REASON_NO_FILE, "未上传任何文件")
        base_name, extension = accepted
        return UploadResult(record=record, base_name=base_name, extension=extension)

    async def _ingest_file(
        self,
        section: MultipartSection,
        disposition: ContentDisposition,
        record: UploadRecord,
        limit: int,
        written: list[str],
    ) -> tuple[UploadRecord, str, str]:
        display_name = display_name_for(disposition.filename or "")
        extension = extension_of(display_name)
        base_name = generate_base_name()
        stored_name = f"{base_name}{extension}"

        try:
            # 白名单先于读取正文，不允许的类型一个字节也不缓冲
            self.validator.ensure_permitted(extension)
            content = await self._read_bounded(section, limit)
            self.validator.validate(extension, content, limit)
        except UploadValidationError as exc:
            logger.warning(
                "Upload rejected: file=%r reason=%s (correlation_id=%s)",
                display_name,
                exc.reason,
                record.correlation_id,
            )
            raise

        written.append(stored_name)
        await self.store.write(stored_name, content)
        logger.info(
            "Uploaded file '%s' saved to '%s' as %s (correlation_id=%s)",
            display_name,
            self.store.root,
            stored_name,
            record.correlation_id,
        )
        record = replace(record, generated_file_name=stored_name, display_file_name=display_name)
        return record, base_name, extension

    async def _read_bounded(self, section: MultipartSection, limit: int) -> bytes:
        """边读边计量，累计字节数超过上限立即拒绝，不再继续缓冲。"""
        buffer = bytearray()
        async for chunk in section.iter_chunks():
            buffer.extend(chunk)
            self.validator.ensure_within_limit(len(buffer), limit)
        return bytes(buffer)

    async def _ingest_field(
        self,
        section: MultipartSection,
        disposition: ContentDisposition,
        record: UploadRecord,
    ) -> UploadRecord:
        raw = bytearray()
        async for chunk in section.iter_chunks():
            raw.extend(chunk)
            if len(raw) > self.max_field_bytes:
                raise UploadValidationError(REASON_TOO_LARGE, "表单字段内容过长", field=disposition.name or "")
        value = raw.decode("utf-8", errors="replace")

        if disposition.name == USER_ID_FIELD:
            user_id = parse_int32(value)
            return record if user_id is None else replace(record, user_id=user_id)
        if disposition.name == COMMENT_FIELD:
            return replace(record, comment=value)
        if disposition.name == IS_PRIMARY_FIELD:
            is_primary = parse_bool(value)
            return record if is_primary is None else replace(record, is_primary=is_primary)
        return record
