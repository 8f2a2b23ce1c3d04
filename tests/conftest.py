"""测试夹具：为 pytest 提供隔离的存储目录、配置与客户端。"""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# 在导入应用之前指向临时目录，避免测试期间在项目根目录下写入日志与文件
_SESSION_ROOT = Path(tempfile.mkdtemp(prefix="filegate_tests_"))
os.environ.setdefault("STORED_FILES_PATH", str(_SESSION_ROOT / "files"))
os.environ.setdefault("LOG_DIR", str(_SESSION_ROOT / "log"))

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.packages.filegate.core.config import Settings, get_settings  # noqa: E402
from app.packages.filegate.services.storage import LocalFileStore  # noqa: E402
from app.packages.filegate.services.validation import StreamValidator  # noqa: E402


@pytest.fixture()
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "files"
    root.mkdir()
    return root


@pytest.fixture()
def settings(storage_root: Path) -> Settings:
    return Settings(
        stored_files_path=str(storage_root),
        file_size_limit=1024,
        permitted_extensions_raw=".gif,.png,.jpg",
        form_value_limit=256,
    )


@pytest.fixture()
def store(storage_root: Path) -> LocalFileStore:
    return LocalFileStore(storage_root)


@pytest.fixture()
def validator(settings: Settings) -> StreamValidator:
    return StreamValidator(settings.permitted_extensions)


@pytest.fixture()
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """构建 FastAPI TestClient，并注入测试专用的配置依赖。"""
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
