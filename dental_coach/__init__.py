"""Dental Coach: an AI coach for dental practices, grounded in a knowledge base.

Architecture Overview
=====================

Every chat turn is one independent, stateless pass through three pieces:

1. **Knowledge Context Builder** reads every *active* knowledge entry from the
   SQL store and serialises them, in creation order, into a single grounding
   block.

2. **Prompt & Response Contract Manager** wraps that block in the coach's
   instructions (persona, grounding data, JSON output rules) and, once the
   model's stream is fully drained, validates the reply against the
   ``StructuredAssistantResponse`` contract the UI renders.

3. **Completion client** streams the reply from Claude via
   ``langchain-anthropic``.

Key Design Decisions
--------------------
- **No retrieval**: the whole active knowledge base goes into the prompt
  verbatim. A character budget drops the oldest-updated entries whole when the
  store outgrows the model's context.
- **Degraded mode**: if the store is unreachable the coach still answers, but
  the prompt tells it that no grounding is available.
- **Silent fallback**: output that does not match the contract is passed to the
  UI as plain prose instead of raising.
- **Dual Interface**: FastAPI server (production) + CLI chat loop (development).

Package Structure
-----------------
- ``dental_coach/config.py`` — Centralized configuration from environment variables
- ``dental_coach/errors.py`` — Error taxonomy
- ``dental_coach/db.py`` / ``models.py`` — SQLAlchemy engine and tables
- ``dental_coach/context.py`` — Knowledge Context Builder
- ``dental_coach/prompts.py`` — Coach instructions and message assembly
- ``dental_coach/contract.py`` — Structured response schema, parser, renderer
- ``dental_coach/coach.py`` — Per-request chat pipeline
- ``dental_coach/seed.py`` — Markdown FAQ importer
- ``dental_coach/server.py`` — FastAPI application
- ``dental_coach/main.py`` — CLI chat interface
- ``dental_coach/services/`` — Knowledge store, completion client, metrics
- ``dental_coach/api/`` — FastAPI routes and Pydantic schemas
"""
