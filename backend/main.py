"""
Upkeep - Maintenance scheduling and notification API

Run with: uvicorn main:app --host 0.0.0.0 --port 8000
"""

import logging

from core.app import create_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn
    from core.config import settings

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
