import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courtplan.config import CORS_ORIGINS, LOG_LEVEL
from courtplan.database import init_db
from courtplan.routes import availability, court_planning, scheduling

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Courtplan Scheduling API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(scheduling.router, prefix="/api", tags=["schedule"])
app.include_router(court_planning.router, prefix="/api", tags=["court-planning"])
app.include_router(availability.router, prefix="/api", tags=["availability"])


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info("Courtplan API started with %d routes", route_count)


@app.get("/api/health")
def health_check():
    return {"app_name": "Courtplan Scheduling API", "status": "healthy"}
