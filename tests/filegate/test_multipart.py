"""流式 multipart 读取：边界解析、分块切分、跳过未读正文与截断检测。"""

import asyncio

import pytest

from app.packages.filegate.core.exceptions import MalformedRequestError
from app.packages.filegate.services.multipart import ContentDisposition, MultipartReader, parse_boundary
from multipart_helpers import BOUNDARY, PNG_BYTES, build_multipart, chunked, file_part, form_field


def _collect(body: bytes, chunk_size: int, read_bodies: bool = True):
    async def run():
        sections = []
        async for section in MultipartReader(chunked(body, chunk_size), BOUNDARY):
            disposition = section.content_disposition
            content = await section.read() if read_bodies else None
            sections.append((disposition, section.content_type, content))
        return sections

    return asyncio.run(run())


def test_parse_boundary():
    assert parse_boundary(f"multipart/form-data; boundary={BOUNDARY}") == BOUNDARY.encode()
    assert parse_boundary('Multipart/Form-Data; boundary="abc"') == b"abc"


@pytest.mark.parametrize(
    "content_type",
    [
        None,
        "",
        "application/json",
        "multipart/form-data",
        "multipart/form-data; boundary=" + "x" * 71,
    ],
)
def test_parse_boundary_rejects(content_type):
    with pytest.raises(MalformedRequestError) as exc_info:
        parse_boundary(content_type)
    assert exc_info.value.data["reason"] == "malformed request"


@pytest.mark.parametrize("chunk_size", [1, 3, 17, 4096])
def test_sections_are_read_in_order_across_chunk_boundaries(chunk_size):
    payload = PNG_BYTES + bytes(range(256)) * 4
    body = build_multipart(
        [
            form_field("userId", "7"),
            file_part("photo.png", payload, content_type="image/png"),
            form_field("comment", "hello\r\nworld"),
        ]
    )

    sections = _collect(body, chunk_size)

    assert [s[0].name for s in sections] == ["userId", "file", "comment"]
    assert sections[0][2] == b"7"
    assert sections[1][0].filename == "photo.png"
    assert sections[1][1] == "image/png"
    assert sections[1][2] == payload
    assert sections[2][2] == b"hello\r\nworld"


def test_unread_sections_are_drained():
    body = build_multipart([file_part("a.png", PNG_BYTES * 50), form_field("comment", "x")])
    sections = _collect(body, 5, read_bodies=False)
    assert [s[0].name for s in sections] == ["file", "comment"]


def test_truncated_body_is_malformed():
    body = build_multipart([file_part("a.png", PNG_BYTES * 10)])
    truncated = body[: len(body) // 2]
    with pytest.raises(MalformedRequestError):
        _collect(truncated, 8)


def test_content_disposition_parsing():
    assert ContentDisposition.parse(None) is None
    assert ContentDisposition.parse(b"") is None

    file_disp = ContentDisposition.parse(b'form-data; name="file"; filename="photo.png"')
    assert file_disp.is_file and not file_disp.is_form_field
    assert file_disp.filename == "photo.png"

    field_disp = ContentDisposition.parse(b'form-data; name="userId"')
    assert field_disp.is_form_field and not field_disp.is_file

    # 浏览器未选择文件时发送空文件名：按普通字段处理
    empty_name = ContentDisposition.parse(b'form-data; name="file"; filename=""')
    assert empty_name.is_form_field and not empty_name.is_file

    attachment = ContentDisposition.parse(b'attachment; filename="x.png"')
    assert not attachment.is_file and not attachment.is_form_field
