"""Web application entry point"""

import uvicorn

from config import settings
from utils.log import setup_logging


if __name__ == "__main__":
    setup_logging()
    uvicorn.run(
        "web.api:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=False,
        log_level=settings.LOG_LEVEL.lower()
    )
