import uvicorn

from docarchive.config import settings
from docarchive.main import app

if __name__ == "__main__":
    uvicorn.run(
        "docarchive.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
