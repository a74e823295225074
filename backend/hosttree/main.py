"""hosttree FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hosttree.assets.router import get_asset_service
from hosttree.assets.router import router as assets_router
from hosttree.assets.service import AssetService
from hosttree.db.connection import Database
from hosttree.ordering.notifications import ChangeNotifier

VERSION = "0.1.0"

# Load .env from backend/ directory before reading any settings
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

logging.getLogger("hosttree").setLevel(
    os.environ.get("HOSTTREE_LOG_LEVEL", "INFO").upper()
)


def _cors_origins() -> list[str]:
    raw = os.environ.get("HOSTTREE_CORS_ORIGINS", "http://localhost:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    db = await Database.connect(os.environ.get("HOSTTREE_DB_PATH", "hosttree.db"))

    service = AssetService(db, notifier=ChangeNotifier())
    app.dependency_overrides[get_asset_service] = lambda: service

    app.state.db = db
    yield

    await db.close()


app = FastAPI(
    title="hosttree",
    description=(
        "Ordered hierarchy of hosts, local endpoints, container hosts and folders"
        " with drag-and-drop reordering stored as sibling links"
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assets_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": VERSION}
