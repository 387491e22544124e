"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from clippy.models import Conversation


class StartConversationRequest(BaseModel):
    """First message of a new conversation."""

    message: str = Field(..., min_length=1, max_length=4000, description="The user's message")


class StartConversationResponse(BaseModel):
    conversation_id: str = Field(..., description="Identifier of the new conversation")
    title: str = Field(..., description="Generated title, or the placeholder if none")
    reply: str = Field(..., description="The assistant's answer")


class ContinueConversationRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000, description="The user's message")


class ContinueConversationResponse(BaseModel):
    reply: str = Field(..., description="The assistant's answer")


class ListConversationsResponse(BaseModel):
    """Conversation summaries; ``messages`` is always empty here."""

    conversations: list[Conversation]


class DescribeConversationResponse(BaseModel):
    conversation: Conversation


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "clippy-chat"
