"""Clippy: a chat assistant that can call tools while it answers.

Architecture Overview
=====================

A conversation is answered by the ``Assistant`` (``clippy/agent.py``), a
LangGraph state machine with two working nodes:

1. **model**: invokes the reply LLM with the conversation so far and the
   catalogue of tools.  The LLM either answers or asks for tool calls.

2. **tools**: runs the requested calls in order through the
   ``ToolRegistry`` and feeds the results back to the model.

Routing: model → (tool calls?) → tools → model (loop until no tool calls → END,
or until ``MAX_REPLY_ITERATIONS`` model calls → ``LoopExhausted``).

When a conversation starts, the ``ConversationCoordinator`` generates its
title and first reply concurrently.  A failed title is ignored; a failed
reply fails the request and nothing is stored.

Package Structure
-----------------
- ``clippy/agent.py``: assistant, reply graph and title generation
- ``clippy/coordinator.py``: concurrent title + reply for new conversations
- ``clippy/service.py``: start / continue / list / describe use cases
- ``clippy/repository.py``: conversation storage interface + in-memory store
- ``clippy/models.py``: conversation and message models
- ``clippy/errors.py``: error taxonomy
- ``clippy/config.py``: configuration from environment variables
- ``clippy/prompts.py``: system and title prompts
- ``clippy/services/``: retry helper, weather and holiday clients, metrics
- ``clippy/tools/``: tool interface, registry and the built-in tools
- ``clippy/api/``: FastAPI routes and Pydantic schemas
- ``clippy/server.py``: FastAPI application
- ``clippy/main.py``: CLI chat interface
"""
