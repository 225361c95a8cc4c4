"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import places  # noqa: E402
from db import init_db  # noqa: E402
from services import places_engine  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create catalog tables on startup; close the geocoder client on shutdown."""
    await init_db()
    yield
    await places_engine.shutdown()


app = FastAPI(
    title="Food Map Places API",
    description="Place resolution and deduplication for a personal food map",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(places.router, prefix="/places", tags=["places"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
