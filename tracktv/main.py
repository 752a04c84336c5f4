import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from tracktv.api.routes_api import router as api_router
from tracktv.core.auth import AuthContext
from tracktv.core.config import get_settings
from tracktv.services.api_client import TrackerClient
from tracktv.services.synchronizer import ShowSynchronizer

load_dotenv()

settings = get_settings()
logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """Application lifespan context manager."""
    auth = AuthContext.from_settings(settings)
    client = TrackerClient(auth, settings)
    app.state.synchronizer = ShowSynchronizer(client, auth)
    try:
        if auth.is_authenticated:
            logger.info("Authenticated, fetching initial data...")
            await app.state.synchronizer.load_all()
        else:
            logger.info("Not authenticated, waiting for login")
        yield
    finally:
        try:
            await client.aclose()
        except Exception as e:
            logger.error(f"Error closing API session: {e}")


app = FastAPI(
    title="TrackTV",
    description="Client cache and sync layer for a personal TV show tracker",
    version="0.1.0",
    lifespan=app_lifespan,
)

app.include_router(api_router, prefix="/api")
