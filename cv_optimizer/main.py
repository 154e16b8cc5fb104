# File: cv_optimizer/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cv_optimizer.api.api import api_router
from cv_optimizer.core.config import settings
from cv_optimizer.db import models
from cv_optimizer.db.database import engine
from cv_optimizer.services.html_renderer import BrowserPool

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_db():
    """Create tables that don't exist yet."""
    try:
        logger.info("Creating database tables if they don't exist...")
        models.Base.metadata.create_all(bind=engine)
        logger.info("Database initialization completed.")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    # Chromium is launched on the first render, not here
    app.state.browser_pool = BrowserPool(settings.BROWSER_POOL_SIZE)
    try:
        yield
    finally:
        await app.state.browser_pool.close()


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    lifespan=lifespan,
)

# Configure CORS with settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Applied-Count", "X-Skipped-Edits", "Content-Disposition"],
)

# Include API router
app.include_router(api_router)


@app.get("/")
def read_root():
    return {"status": "CV Optimizer API is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
