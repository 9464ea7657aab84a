"""Booking API entry point.

Run with:
    uvicorn salonbook.main:app --reload

Or:
    python -m salonbook.main
"""

import logging
import os
from contextlib import asynccontextmanager

from salonbook.api import create_app
from salonbook.config import DATABASE_PATH, LOG_FORMAT, LOG_LEVEL
from salonbook.storage import SalonDB

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    """Log the database in use at startup, close it on shutdown."""
    logger.info(f"✅ Database initialized: {app.state.db.db_path}")

    yield

    app.state.db.close()
    logger.info("✅ Database closed")


app = create_app(db=SalonDB(DATABASE_PATH))
app.router.lifespan_context = lifespan


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "salonbook.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
