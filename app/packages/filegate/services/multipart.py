"""流式 multipart 读取器：逐段（section）产出，内存占用与单个数据块同量级。

底层使用 python-multipart 的推送式解析器，每次只向解析器写入一个网络数据块，
再将回调产生的事件按顺序交给调用方消费；未读完的段会在读取下一段前被自动丢弃。
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Optional

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header

from app.packages.filegate.core.constants import DEFAULT_BOUNDARY_LENGTH_LIMIT
from app.packages.filegate.core.exceptions import MalformedRequestError

_HEADERS = "headers"
_DATA = "data"
_PART_END = "part_end"
_END = "end"


def parse_boundary(content_type: Optional[str], length_limit: int = DEFAULT_BOUNDARY_LENGTH_LIMIT) -> bytes:
    """从 ``Content-Type`` 中提取 multipart 边界，缺失、为空或过长时视为请求格式错误。"""
    if not content_type:
        raise MalformedRequestError("请求类型必须为 multipart/form-data", "missing content type")
    media_type, options = parse_options_header(content_type)
    if not media_type.lower().startswith(b"multipart/"):
        raise MalformedRequestError("请求类型必须为 multipart/form-data", f"content type {content_type!r}")
    boundary = options.get(b"boundary", b"").strip(b'"')
    if not boundary:
        raise MalformedRequestError("缺少 multipart 边界", "missing boundary")
    if len(boundary) > length_limit:
        raise MalformedRequestError("multipart 边界长度超出限制", f"boundary longer than {length_limit}")
    return boundary


@dataclass(frozen=True)
class ContentDisposition:
    disposition: str
    name: Optional[str] = None
    filename: Optional[str] = None

    @classmethod
    def parse(cls, raw: Optional[bytes]) -> Optional["ContentDisposition"]:
        """解析失败返回 ``None``，由调用方决定跳过该段。"""
        if not raw:
            return None
        try:
            disposition, options = parse_options_header(raw)
            name = options.get(b"name")
            filename = options.get(b"filename")
            return cls(
                disposition=disposition.decode("latin-1").strip().lower(),
                name=name.decode("utf-8") if name is not None else None,
                filename=filename.decode("utf-8") if filename is not None else None,
            )
        except (UnicodeDecodeError, ValueError):
            return None

    @property
    def is_file(self) -> bool:
        return self.disposition == "form-data" and bool(self.filename)

    @property
    def is_form_field(self) -> bool:
        return self.disposition == "form-data" and not self.filename and self.name is not None


class MultipartSection:
    """multipart 请求体中的一段：自带头部，正文只能顺序读取一次。"""

    def __init__(self, reader: "MultipartReader", headers: dict[str, bytes]) -> None:
        self.headers = headers
        self._reader = reader
        self._consumed = False

    @property
    def content_disposition(self) -> Optional[ContentDisposition]:
        return ContentDisposition.parse(self.headers.get("content-disposition"))

    @property
    def content_type(self) -> Optional[str]:
        raw = self.headers.get("content-type")
        return raw.decode("latin-1") if raw is not None else None

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        while not self._consumed:
            kind, payload = await self._reader._next_event()
            if kind == _DATA:
                if payload:
                    yield payload
            elif kind == _PART_END:
                self._consumed = True
            else:
                raise MalformedRequestError("multipart 请求体格式错误", f"unexpected {kind} inside a section")

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self.iter_chunks()])

    async def drain(self) -> None:
        async for _ in self.iter_chunks():
            pass


class MultipartReader:
    """将异步字节流转换为惰性、有限且不可重放的 section 序列。"""

    def __init__(self, stream: AsyncIterable[bytes], boundary: bytes | str) -> None:
        self._stream = stream.__aiter__()
        self._events: deque[tuple[str, Any]] = deque()
        self._header_field = b""
        self._header_value = b""
        self._headers: dict[str, bytes] = {}
        self._current: Optional[MultipartSection] = None
        self._exhausted = False
        self._finished = False
        try:
            self._parser = MultipartParser(
                boundary,
                callbacks={
                    "on_part_begin": self._on_part_begin,
                    "on_header_field": self._on_header_field,
                    "on_header_value": self._on_header_value,
                    "on_header_end": self._on_header_end,
                    "on_headers_finished": self._on_headers_finished,
                    "on_part_data": self._on_part_data,
                    "on_part_end": self._on_part_end,
                    "on_end": self._on_end,
                },
            )
        except FormParserError as exc:
            raise MalformedRequestError("multipart 边界非法", str(exc)) from exc

    # ----------------------------
    # 解析器回调
    # ----------------------------
    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        field = self._header_field.decode("latin-1").strip().lower()
        self._headers[field] = self._header_value.strip()
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        self._events.append((_HEADERS, self._headers))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._events.append((_DATA, bytes(data[start:end])))

    def _on_part_end(self) -> None:
        self._events.append((_PART_END, None))

    def _on_end(self) -> None:
        self._events.append((_END, None))

    # ----------------------------
    # 事件驱动
    # ----------------------------
    async def _next_event(self) -> tuple[str, Any]:
        while not self._events:
            if self._exhausted:
                raise MalformedRequestError("multipart 请求体不完整", "unexpected end of body")
            try:
                chunk = await self._stream.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                self._feed(None)
                continue
            if chunk:
                self._feed(chunk)
        return self._events.popleft()

    def _feed(self, chunk: Optional[bytes]) -> None:
        try:
            if chunk is None:
                self._parser.finalize()
            else:
                self._parser.write(chunk)
        except FormParserError as exc:
            raise MalformedRequestError("multipart 请求体格式错误", str(exc)) from exc

    async def next_section(self) -> Optional[MultipartSection]:
        """返回下一段；上一段未读完的正文先被丢弃。没有更多段时返回 ``None``。"""
        if self._current is not None:
            await self._current.drain()
            self._current = None
        if self._finished:
            return None
        kind, payload = await self._next_event()
        if kind == _END:
            self._finished = True
            return None
        if kind != _HEADERS:
            raise MalformedRequestError("multipart 请求体格式错误", f"unexpected {kind} between sections")
        self._current = MultipartSection(self, payload)
        return self._current

    def __aiter__(self) -> AsyncIterator[MultipartSection]:
        return self._iter_sections()

    async def _iter_sections(self) -> AsyncIterator[MultipartSection]:
        section = await self.next_section()
        while section is not None:
            yield section
            section = await self.next_section()
