import os

import uvicorn

from traffic_limiter.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the app with uvicorn (HOST/PORT from the environment)."""
    uvicorn.run(
        "traffic_limiter.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )
