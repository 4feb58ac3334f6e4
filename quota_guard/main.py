import uvicorn

from quota_guard.core.app_factory import create_app
from quota_guard.core.config import settings

app = create_app()


def run() -> None:
    """Serve the API with uvicorn on APP_HOST:APP_PORT."""
    uvicorn.run(
        "quota_guard.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
