# calmcampus backend api
# fastapi app with async mongodb, jwt sessions, and a realtime peer chat relay

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from calmcampus.config import settings
from calmcampus.services.db import db
from calmcampus.routers import appointments, chat, groups, moods, notifications, profile, support, teacher, wellness

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb and ensure indexes. shutdown: close connection."""
    logger.info("Starting CalmCampus backend...")
    await db.connect()
    await db.ensure_indexes()
    logger.info("CalmCampus backend ready")
    yield
    logger.info("Shutting down CalmCampus backend...")
    await db.close()


app = FastAPI(
    title="CalmCampus API",
    description="Backend API for CalmCampus — student wellness tracking, teacher monitoring, peer support chat",
    version="0.1.0",
    lifespan=lifespan,
)

# cors — allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    # websocket scopes reach here too and carry no method
    method = getattr(request, "method", "WS")
    logger.error(f"Store error on {method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "The data store is unavailable. Please try again."},
    )


# register routers
app.include_router(profile.router)
app.include_router(moods.router)
app.include_router(wellness.router)
app.include_router(teacher.router)
app.include_router(appointments.router)
app.include_router(groups.router)
app.include_router(chat.router)
app.include_router(notifications.router)
app.include_router(support.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "calmcampus-api"}
