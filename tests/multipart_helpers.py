"""multipart 请求体构造工具：供各测试模块手工拼装上传数据。"""

from typing import AsyncIterator, Iterable, Optional

BOUNDARY = "----FileGateBoundary7MA4YWxkTrZu0gW"
PNG_BYTES = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A])
JPEG_BYTES = bytes([0xFF, 0xD8, 0xFF, 0xE0]) + b"\x00\x10JFIF\x00"
GIF_BYTES = b"GIF89a" + b"\x01\x00\x01\x00\x00\x00\x00"


def form_field(name: str, value: str) -> tuple[dict[str, str], bytes]:
    return ({"Content-Disposition": f'form-data; name="{name}"'}, value.encode("utf-8"))


def file_part(
    filename: str,
    content: bytes,
    name: str = "file",
    content_type: str = "application/octet-stream",
) -> tuple[dict[str, str], bytes]:
    return (
        {
            "Content-Disposition": f'form-data; name="{name}"; filename="{filename}"',
            "Content-Type": content_type,
        },
        content,
    )


def build_multipart(parts: Iterable[tuple[dict[str, str], bytes]], boundary: str = BOUNDARY) -> bytes:
    chunks: list[bytes] = []
    for headers, body in parts:
        chunks.append(f"--{boundary}\r\n".encode("latin-1"))
        for key, value in headers.items():
            chunks.append(f"{key}: {value}\r\n".encode("utf-8"))
        chunks.append(b"\r\n")
        chunks.append(body)
        chunks.append(b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode("latin-1"))
    return b"".join(chunks)


async def chunked(
    body: bytes,
    size: int = 64,
    fail_after: Optional[int] = None,
    error: Optional[BaseException] = None,
) -> AsyncIterator[bytes]:
    """按固定大小切分请求体，可选在若干块之后模拟客户端断开。"""
    for count, start in enumerate(range(0, len(body), size)):
        if fail_after is not None and count >= fail_after:
            raise error or ConnectionResetError("client disconnected")
        yield body[start : start + size]
