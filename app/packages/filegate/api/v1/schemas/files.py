"""文件上传/下载 请求与响应模型。"""

from typing import Optional

from pydantic import BaseModel

from app.packages.filegate.api.v1.schemas.common import ResponseEnvelope


class UploadedFile(BaseModel):
    address: str
    extensionIndex: int
    fileName: str
    displayName: str
    correlationId: str
    userId: Optional[int] = None
    comment: Optional[str] = None
    isPrimary: bool = False


UploadResponse = ResponseEnvelope[UploadedFile]
