"""异常处理模块：定义上传/下载链路的业务异常与统一响应格式。"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.packages.filegate.core.constants import (
    FILE_FIELD,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_NOT_FOUND,
    REASON_MALFORMED,
)
from app.packages.filegate.core.logger import logger
from app.packages.filegate.core.responses import create_response


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data: Any = None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class UploadValidationError(AppException):
    """上传内容未通过校验：空文件、超限、签名不符或扩展名不被允许。"""

    def __init__(self, reason: str, msg: str, field: str = FILE_FIELD) -> None:
        super().__init__(msg, HTTP_STATUS_BAD_REQUEST, {"field": field, "reason": reason})
        self.reason = reason
        self.field = field


class MalformedRequestError(AppException):
    """请求体无法解析：非 multipart、边界非法或分段结构损坏。"""

    def __init__(self, msg: str, detail: Optional[str] = None) -> None:
        super().__init__(msg, HTTP_STATUS_BAD_REQUEST, {"reason": REASON_MALFORMED, "detail": detail})
        self.reason = REASON_MALFORMED


class StoredFileNotFoundError(AppException):
    """下载地址无法解析为已存储的文件，reason 为 ``extension`` 或 ``file``。"""

    def __init__(self, reason: str, msg: str) -> None:
        super().__init__(msg, HTTP_STATUS_NOT_FOUND, {"reason": reason})
        self.reason = reason


class StorageIOError(AppException):
    """磁盘读写失败；与校验失败区分，对外表现为服务端错误。"""

    def __init__(self, msg: str) -> None:
        super().__init__(msg, HTTP_STATUS_INTERNAL_SERVER_ERROR)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 ``HTTPException`` 转换为统一响应格式。"""
    payload = create_response(exc.detail, getattr(exc, "data", None), exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = create_response("服务器内部错误", None, HTTP_STATUS_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=HTTP_STATUS_INTERNAL_SERVER_ERROR, content=payload)
