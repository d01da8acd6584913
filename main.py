"""
Root entry point, run with: python main.py
"""
import uvicorn

from pharmaguard.config import get_settings

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "pharmaguard.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else settings.log_level.lower(),
    )
