"""
Development entry point.
"""
import uvicorn

from leavetime.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "leavetime.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
