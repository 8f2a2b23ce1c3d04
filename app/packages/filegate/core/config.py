"""配置模块：负责加载和缓存基于环境变量的应用设置。"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.packages.filegate.core.constants import BYTES_PER_MEGABYTE, DEFAULT_BOUNDARY_LENGTH_LIMIT


def _detect_base_dir() -> Path:
    """向上遍历目录树，寻找包含 `app` 目录的项目根路径。"""
    current = Path(__file__).resolve()
    for candidate in current.parents:
        if (candidate / "app").is_dir():
            return candidate
    return current.parent


BASE_DIR = _detect_base_dir()


def _as_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_environment() -> None:
    """按 ENV_FILE > .env.{ENVIRONMENT} > .env 的优先级加载环境文件。"""
    env_file_override = os.getenv("ENV_FILE")
    if env_file_override:
        candidate = BASE_DIR / env_file_override
        if candidate.exists():
            load_dotenv(candidate, override=True, encoding="utf-8")
        return

    base_env = BASE_DIR / ".env"
    if base_env.exists():
        load_dotenv(base_env, override=False, encoding="utf-8")

    environment = os.getenv("ENVIRONMENT")
    if environment is None and _as_bool(os.getenv("DEBUG")):
        environment = "development"

    if environment:
        candidate_name = environment if environment.startswith(".env") else f".env.{environment}"
        candidate_path = BASE_DIR / candidate_name
        if candidate_path.exists():
            load_dotenv(candidate_path, override=True, encoding="utf-8")


_load_environment()


def normalize_extension(value: str) -> str:
    """统一扩展名格式：小写、带前导点，空值返回空串。"""
    ext = (value or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


class Settings(BaseSettings):
    """
    封装上传服务运行所需的配置项，每个字段都可以通过环境变量重写。
    存储目录、大小上限与扩展名白名单均在此集中声明。
    """

    project_name: str = Field(default="FileGate API", alias="PROJECT_NAME")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    debug: bool = Field(default=False, alias="DEBUG")

    stored_files_path: str = Field(default="storage/files", alias="STORED_FILES_PATH")
    file_size_limit: int = Field(default=2 * BYTES_PER_MEGABYTE, gt=0, alias="FILE_SIZE_LIMIT")
    permitted_extensions_raw: str = Field(default=".gif,.png,.jpg", alias="PERMITTED_EXTENSIONS")
    form_value_limit: int = Field(default=64 * 1024, gt=0, alias="FORM_VALUE_LIMIT")
    multipart_boundary_length_limit: int = Field(
        default=DEFAULT_BOUNDARY_LENGTH_LIMIT, gt=0, alias="MULTIPART_BOUNDARY_LENGTH_LIMIT"
    )
    # 为空时使用请求自身的 scheme://host 拼接下载地址
    public_base_url: str = Field(default="", alias="PUBLIC_BASE_URL")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="Asia/Shanghai", alias="TIMEZONE")

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    def _resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path

    @property
    def storage_directory(self) -> Path:
        """返回文件存储根目录的绝对路径，支持相对路径配置。"""
        return self._resolve_path(self.stored_files_path)

    @property
    def permitted_extensions(self) -> list[str]:
        raw = (self.permitted_extensions_raw or "").strip()
        return [normalize_extension(item) for item in raw.split(",") if item.strip()]

    @property
    def log_directory(self) -> Path:
        return self._resolve_path(self.log_dir)

    @property
    def log_file_path(self) -> Path:
        return self.log_directory / self.log_file_name

    @property
    def timezone_info(self) -> ZoneInfo:
        """返回当前配置对应的时区信息，无法解析时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")


@lru_cache
def get_settings() -> Settings:
    """返回单例化的配置对象，避免重复解析环境变量。"""
    return Settings()
