import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from startlist.database import init_db
from startlist.routes import competitions, start_lists

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Start List Engine API")

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
app.include_router(competitions.router, prefix="/api", tags=["competitions"])
app.include_router(start_lists.router, prefix="/api", tags=["start-lists"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Database initialized, %d routes registered", len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": "Start List Engine API", "status": "healthy"}
