"""Main application entry point.

Run with ``uvicorn warden.main:app`` or ``python -m warden.main``.
"""

import uvicorn

from warden.core.application import create_application
from warden.core.config.settings import settings
from warden.core.initialization import initialize_application

initialize_application()

app = create_application()


if __name__ == "__main__":
    uvicorn.run(
        "warden.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        workers=settings.API_WORKERS,
        reload=settings.RELOAD,
    )
