"""clog FastAPI app serving aggregated Claude Code usage statistics."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from clog import config
from clog.routers.stats import stats_router

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("clog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("clog starting up (projects dir: %s)", config.PROJECTS_DIR)
    yield
    logger.info("clog shut down")


app = FastAPI(
    title="clog",
    description="Aggregated Claude Code session statistics",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(stats_router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "projectsDir": str(config.PROJECTS_DIR)}
