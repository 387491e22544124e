"""FastAPI route definitions for the Clippy chat API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from clippy.api.schemas import (
    ContinueConversationRequest,
    ContinueConversationResponse,
    DescribeConversationResponse,
    HealthResponse,
    ListConversationsResponse,
    StartConversationRequest,
    StartConversationResponse,
)
from clippy.config import REQUEST_TIMEOUT_SECONDS
from clippy.errors import ConversationNotFound, ValidationError
from clippy.service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(request: Request) -> ChatService:
    """Retrieve the chat service created by the FastAPI lifespan."""
    service = getattr(request.app.state, "chat", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return service


def _http_error(exc: Exception, request_id: str) -> HTTPException:
    """Map a service error onto an HTTP error without leaking internals."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ConversationNotFound):
        return HTTPException(status_code=404, detail="Conversation not found.")
    if isinstance(exc, TimeoutError):
        logger.error("[%s] Request timed out after %.0fs", request_id, REQUEST_TIMEOUT_SECONDS)
        return HTTPException(status_code=504, detail="The assistant took too long to answer.")

    logger.exception("[%s] Error processing chat request", request_id, exc_info=exc)
    return HTTPException(
        status_code=500,
        detail="An internal error occurred. Please try again.",
    )


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/conversations", response_model=StartConversationResponse)
async def start_conversation(body: StartConversationRequest, http_request: Request):
    """Start a conversation: the title and the first reply are generated concurrently."""
    service = _get_service(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        async with asyncio.timeout(REQUEST_TIMEOUT_SECONDS):
            conversation, reply = await service.start_conversation(body.message)
    except Exception as e:
        raise _http_error(e, request_id) from e

    return StartConversationResponse(
        conversation_id=conversation.id,
        title=conversation.title,
        reply=reply,
    )


@router.post("/conversations/{conversation_id}/messages", response_model=ContinueConversationResponse)
async def continue_conversation(
    conversation_id: str,
    body: ContinueConversationRequest,
    http_request: Request,
):
    """Send a follow-up message to an existing conversation."""
    service = _get_service(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        async with asyncio.timeout(REQUEST_TIMEOUT_SECONDS):
            reply = await service.continue_conversation(conversation_id, body.message)
    except Exception as e:
        raise _http_error(e, request_id) from e

    return ContinueConversationResponse(reply=reply)


@router.get("/conversations", response_model=ListConversationsResponse)
async def list_conversations(http_request: Request):
    service = _get_service(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        conversations = await service.list_conversations()
    except Exception as e:
        raise _http_error(e, request_id) from e

    return ListConversationsResponse(conversations=conversations)


@router.get("/conversations/{conversation_id}", response_model=DescribeConversationResponse)
async def describe_conversation(conversation_id: str, http_request: Request):
    service = _get_service(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        conversation = await service.describe_conversation(conversation_id)
    except Exception as e:
        raise _http_error(e, request_id) from e

    return DescribeConversationResponse(conversation=conversation)
