"""HTTP 客户端：上传本地文件并按返回的地址下载回来。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import httpx

from app.packages.filegate.core.constants import COMMENT_FIELD, FILE_FIELD, IS_PRIMARY_FIELD, USER_ID_FIELD

logger = logging.getLogger("app.client")


class FileGateClient:
    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.Client] = None,
        api_prefix: str = "/api",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self._client = http_client or httpx.Client(timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FileGateClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def upload_file(
        self,
        file_path: str | Path,
        *,
        user_id: Optional[int] = None,
        comment: Optional[str] = None,
        is_primary: Optional[bool] = None,
    ) -> str:
        """上传文件并返回下载地址；非 2xx 响应抛出 ``httpx.HTTPStatusError``。"""
        if not str(file_path).strip():
            raise ValueError("file_path is empty")
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File [{path}] not found.")

        logger.info("Uploading file [%s].", path)
        fields: dict[str, str] = {}
        if user_id is not None:
            fields[USER_ID_FIELD] = str(user_id)
        if comment is not None:
            fields[COMMENT_FIELD] = comment
        if is_primary is not None:
            fields[IS_PRIMARY_FIELD] = "true" if is_primary else "false"

        with path.open("rb") as fh:
            response = self._client.post(
                f"{self.base_url}{self.api_prefix}/files",
                data=fields,
                files={FILE_FIELD: (path.name, fh, "application/octet-stream")},
            )
        response.raise_for_status()
        address = response.json()["data"]["address"]
        logger.info("Uploading is complete: %s", address)
        return address

    def download_file(self, address: str, target: str | Path) -> Path:
        """下载地址对应的文件并写入 ``target``，返回目标的绝对路径。"""
        if not address or not address.strip():
            raise ValueError("address is empty")
        target_path = Path(target).resolve()
        logger.info("Downloading file %s.", address)
        with self._client.stream("GET", address) as response:
            response.raise_for_status()
            with target_path.open("wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
        logger.info("File saved as [%s].", target_path.name)
        return target_path
