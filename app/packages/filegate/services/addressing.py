"""下载地址：``(扩展名, 随机文件名)`` 与 ``(扩展名序号, 随机文件名)`` 之间的互转。"""

from __future__ import annotations

from dataclasses import dataclass

from app.packages.filegate.core.constants import NOT_FOUND_EXTENSION
from app.packages.filegate.core.exceptions import StoredFileNotFoundError
from app.packages.filegate.services.signatures import SignatureRegistry, signature_registry


@dataclass(frozen=True)
class RetrievalAddress:
    extension_index: int
    base_name: str

    @property
    def path(self) -> str:
        return f"/files/{self.extension_index}/{self.base_name}"

    def to_url(self, base_url: str, api_prefix: str = "/api") -> str:
        prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        return f"{base_url.rstrip('/')}{prefix}{self.path}"


class FileAddressResolver:
    def __init__(self, registry: SignatureRegistry = signature_registry) -> None:
        self.registry = registry

    def build(self, extension: str, base_name: str) -> RetrievalAddress:
        index = self.registry.index_of(extension)
        if index is None:
            raise ValueError(f"extension {extension!r} is not registered")
        return RetrievalAddress(extension_index=index, base_name=base_name)

    def resolve(self, extension_index: int) -> str | None:
        return self.registry.extension_of(extension_index)

    def parse(self, extension_index: int, base_name: str) -> tuple[str, str]:
        extension = self.resolve(extension_index)
        if extension is None:
            raise StoredFileNotFoundError(NOT_FOUND_EXTENSION, "扩展名不存在")
        return extension, base_name


address_resolver = FileAddressResolver()
