"""本地文件存储：扁平目录 ``{root}/{base_name}{extension}``，无子目录与元数据文件。"""

from __future__ import annotations

import os
import re
import secrets
from pathlib import Path

from starlette.concurrency import run_in_threadpool

from app.packages.filegate.core.exceptions import MalformedRequestError, StorageIOError
from app.packages.filegate.core.logger import logger

# token_urlsafe(16) → 128 bit 熵，22 个 URL 安全字符
BASE_NAME_BYTES = 16
BASE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")
_PART_SUFFIX = ".part"


def generate_base_name() -> str:
    return secrets.token_urlsafe(BASE_NAME_BYTES)


def is_valid_base_name(base_name: str) -> bool:
    return bool(BASE_NAME_PATTERN.fullmatch(base_name or ""))


class LocalFileStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"无法创建存储目录: {exc}") from exc

    # 统一的安全路径拼接，防止路径遍历
    def resolve(self, file_name: str) -> Path:
        if not file_name or file_name != os.path.basename(file_name) or file_name in {".", ".."}:
            raise MalformedRequestError("非法文件名", file_name)
        candidate = (self.root / file_name).resolve()
        if candidate.parent != self.root:
            raise MalformedRequestError("非法文件名: 越权访问", file_name)
        return candidate

    def _temp_path(self, target: Path) -> Path:
        return target.with_name(f".{target.name}.{secrets.token_hex(4)}{_PART_SUFFIX}")

    def _write_atomic(self, file_name: str, content: bytes) -> Path:
        target = self.resolve(file_name)
        tmp = self._temp_path(target)
        try:
            with open(tmp, "xb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            logger.exception("Storage write failed: %s", target.name)
            raise StorageIOError("文件保存失败：服务器错误") from exc
        return target

    async def write(self, file_name: str, content: bytes) -> Path:
        """先写入隐藏的临时文件并落盘，再原子替换为目标文件名。"""
        return await run_in_threadpool(self._write_atomic, file_name, content)

    def _read(self, file_name: str) -> bytes:
        target = self.resolve(file_name)
        try:
            with open(target, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise
        except OSError as exc:
            logger.exception("Storage read failed: %s", target.name)
            raise StorageIOError("文件读取失败：服务器错误") from exc

    async def read(self, file_name: str) -> bytes:
        return await run_in_threadpool(self._read, file_name)

    def exists(self, file_name: str) -> bool:
        return self.resolve(file_name).is_file()

    def discard(self, file_name: str) -> None:
        """删除本次请求写入的文件；不存在时忽略。"""
        try:
            self.resolve(file_name).unlink(missing_ok=True)
        except OSError:
            logger.exception("Failed to discard stored file: %s", file_name)
