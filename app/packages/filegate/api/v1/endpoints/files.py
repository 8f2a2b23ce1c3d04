"""文件上传与下载路由。

上传接口直接消费原始请求流，不使用 ``UploadFile``，避免整表单先被缓冲到临时文件。
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import Response

from app.packages.filegate.api.v1.schemas.files import UploadResponse
from app.packages.filegate.core.config import Settings, get_settings
from app.packages.filegate.core.dependencies import get_ingester, get_retrieval_service
from app.packages.filegate.core.logger import logger
from app.packages.filegate.core.responses import create_response
from app.packages.filegate.services.addressing import address_resolver
from app.packages.filegate.services.ingestion import MultipartIngester
from app.packages.filegate.services.multipart import parse_boundary
from app.packages.filegate.services.retrieval import RetrievalService

router = APIRouter(tags=["files"])


@router.post("/files", response_model=UploadResponse)
async def upload_file(
    request: Request,
    settings: Settings = Depends(get_settings),
    ingester: MultipartIngester = Depends(get_ingester),
):
    """接收 multipart 上传，校验通过后返回可用于下载的地址。"""
    boundary = parse_boundary(request.headers.get("content-type"), settings.multipart_boundary_length_limit)
    result = await ingester.ingest(request.stream(), boundary)

    address = address_resolver.build(result.extension, result.base_name)
    base_url = settings.public_base_url or str(request.base_url)
    record = result.record
    data = {
        "address": address.to_url(base_url, settings.api_prefix),
        "extensionIndex": address.extension_index,
        "fileName": address.base_name,
        "displayName": record.display_file_name,
        "correlationId": record.correlation_id,
        "userId": record.user_id,
        "comment": record.comment,
        "isPrimary": record.is_primary,
    }
    return create_response("上传成功", data)


@router.get("/files/{file_type}/{file_name}")
async def download_file(
    file_type: int = Path(..., description="扩展名序号"),
    file_name: str = Path(..., description="不含扩展名的存储文件名"),
    retrieval: RetrievalService = Depends(get_retrieval_service),
):
    stored = await retrieval.fetch(file_type, file_name)
    logger.debug("Serving %s (%s bytes)", stored.file_name, len(stored.content))
    return Response(
        content=stored.content,
        media_type=stored.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{stored.file_name}"'},
    )
