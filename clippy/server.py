"""FastAPI server for the Clippy chat service.

Run with:
    uvicorn clippy.server:app --reload --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from clippy.agent import Assistant
from clippy.api.routes import router
from clippy.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from clippy.repository import InMemoryConversationRepository
from clippy.service import ChatService

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the assistant and the chat service once and keep them in app state."""
    logger.info("Building assistant…")
    assistant = Assistant()
    application.state.chat = ChatService(assistant, InMemoryConversationRepository())
    logger.info("Assistant ready with tools: %s", ", ".join(assistant.registry.names))
    yield
    await assistant.aclose()
    application.state.chat = None


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Clippy",
    description="Chat with an assistant that can check the date, local holidays and the weather.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID to every request and echo it as ``X-Request-ID``."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Clippy",
        "message": "Hi, my name is Clippy!",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


def run() -> None:
    logger.info("Starting Clippy API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run("clippy.server:app", host=SERVER_HOST, port=SERVER_PORT)


if __name__ == "__main__":
    run()
