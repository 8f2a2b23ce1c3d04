"""依赖注入模块：按当前配置组装存储、校验、接收与下载服务。"""

from fastapi import Depends

from app.packages.filegate.core.config import Settings, get_settings
from app.packages.filegate.services.ingestion import MultipartIngester
from app.packages.filegate.services.retrieval import RetrievalService
from app.packages.filegate.services.storage import LocalFileStore
from app.packages.filegate.services.validation import StreamValidator


def get_file_store(settings: Settings = Depends(get_settings)) -> LocalFileStore:
    return LocalFileStore(settings.storage_directory)


def get_validator(settings: Settings = Depends(get_settings)) -> StreamValidator:
    return StreamValidator(settings.permitted_extensions)


def get_ingester(
    settings: Settings = Depends(get_settings),
    store: LocalFileStore = Depends(get_file_store),
    validator: StreamValidator = Depends(get_validator),
) -> MultipartIngester:
    """每个请求一个接收器实例，请求之间不共享可变状态。"""
    return MultipartIngester(
        store,
        validator,
        max_size_bytes=settings.file_size_limit,
        max_field_bytes=settings.form_value_limit,
    )


def get_retrieval_service(store: LocalFileStore = Depends(get_file_store)) -> RetrievalService:
    return RetrievalService(store)


def init_storage() -> None:
    """启动时校验扩展名白名单并确保存储目录存在；白名单含未登记签名的扩展名时直接终止启动。"""
    settings = get_settings()
    StreamValidator(settings.permitted_extensions)
    LocalFileStore(settings.storage_directory).ensure_root()
