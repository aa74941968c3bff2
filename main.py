import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.scheduler import start_scheduler, stop_scheduler
from core.session import GameSession
from core.storage import SnapshotStore
from core.sync_service import SyncGateway
from routes import analytics, day, habits, profile, side_quests

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_session() -> GameSession:
    return GameSession(
        store=SnapshotStore(),
        gateway=SyncGateway(),
        user_id=settings.USER_ID,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    session = create_session()
    app.state.session = session
    session.start()
    start_scheduler(session)
    # Rolls the day over and replays the retry queue in the background
    session.foreground()
    logger.info("%s session ready (user %s)", settings.APP_NAME, session.user_id or "anonymous")
    yield
    stop_scheduler()
    await session.stop()
    session.persist()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS
origins = [
    settings.FRONTEND_URL,
    "http://localhost:8081",
    "http://localhost:19006", # Expo web
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Routers
app.include_router(habits.router)
app.include_router(day.router)
app.include_router(side_quests.router)
app.include_router(profile.router)
app.include_router(analytics.router)


@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
