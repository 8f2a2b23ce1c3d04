import uvicorn

from app.packages.filegate.core.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.app_port,
        reload=settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    main()
