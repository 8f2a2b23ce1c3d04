"""下载服务：根据地址定位存储文件并返回内容与 MIME 类型。"""

from __future__ import annotations

from dataclasses import dataclass

from app.packages.filegate.core.constants import NOT_FOUND_FILE
from app.packages.filegate.core.exceptions import MalformedRequestError, StoredFileNotFoundError
from app.packages.filegate.core.logger import logger
from app.packages.filegate.services.addressing import FileAddressResolver, address_resolver
from app.packages.filegate.services.storage import LocalFileStore, is_valid_base_name


@dataclass(frozen=True)
class StoredFileContent:
    content: bytes
    mime_type: str
    file_name: str


class RetrievalService:
    def __init__(self, store: LocalFileStore, resolver: FileAddressResolver = address_resolver) -> None:
        self.store = store
        self.resolver = resolver

    async def fetch(self, extension_index: int, base_name: str) -> StoredFileContent:
        extension, base_name = self.resolver.parse(extension_index, base_name)
        # 先校验文件名再访问磁盘，防止 ../ 之类的路径穿越
        if not is_valid_base_name(base_name):
            raise MalformedRequestError("非法文件名", base_name)

        file_name = f"{base_name}{extension}"
        try:
            content = await self.store.read(file_name)
        except FileNotFoundError as exc:
            logger.info("File %s not exists", file_name)
            raise StoredFileNotFoundError(NOT_FOUND_FILE, "文件不存在") from exc

        entry = self.resolver.registry.get(extension)
        logger.info("Downloading file [%s].", file_name)
        return StoredFileContent(content=content, mime_type=entry.mime_type, file_name=file_name)
