import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from clubplanner.database import engine, init_db
from clubplanner.repository import DocumentRepository
from clubplanner.routes import courts, history, matching, players, settings
from clubplanner.services.planner import PlannerService

logger = logging.getLogger(__name__)

APP_NAME = "Club Planner API"

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(players.router, prefix="/api", tags=["players"])
app.include_router(courts.router, prefix="/api", tags=["courts"])
app.include_router(matching.router, prefix="/api", tags=["matching"])
app.include_router(history.router, prefix="/api", tags=["history"])
app.include_router(settings.router, prefix="/api", tags=["settings"])


def _seed_enabled() -> bool:
    return os.getenv("SEED_DEFAULT_COURTS", "true").lower() in ("true", "1", "yes")


@app.on_event("startup")
def on_startup():
    init_db()
    if _seed_enabled():
        with Session(engine) as session:
            PlannerService(DocumentRepository(session)).seed_defaults()
    logger.info("%s started with %d routes", APP_NAME, len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": APP_NAME, "status": "healthy"}
