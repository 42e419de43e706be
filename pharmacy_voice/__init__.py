"""Pharmacy voice agent backend: the server side of a Retell AI phone agent.

Architecture Overview
=====================

Retell hosts the conversation (telephony, speech, LLM).  This service is
what the agent talks to:

1. **Lifecycle webhooks** (``POST /webhooks/retell``): ``call_started``,
   ``call_ended`` and ``call_analyzed`` events are validated, logged and
   always acknowledged.

2. **Tool calls** (``POST /webhooks/retell/tools``): mid-call function
   invocations are routed by name to one of four LangChain tools
   (``lookup_product``, ``create_order``, ``log_complaint``,
   ``transfer_to_human``).  Every tool answers with a sentence the agent
   can speak.

3. **Web calls** (``POST /api/web-call``): browser calls are created via the
   Retell API behind per-IP and daily admission limits.

Key Design Decisions
--------------------
- **State**: catalog, ledgers, call log and rate limiter live in one
  ``PharmacyState`` created at start-up and injected everywhere; nothing is
  persisted across restarts.
- **Never fail the platform**: webhook and tool endpoints always return
  success.  Errors become log lines or a spoken offer to reach a human.
- **Catalog**: a CSV file read lazily once, searched with AND-of-tokens
  substring matching.

Package Structure
-----------------
- ``pharmacy_voice/config.py``: configuration from environment variables
- ``pharmacy_voice/state.py``: the shared state container
- ``pharmacy_voice/server.py``: FastAPI application
- ``pharmacy_voice/main.py``: CLI tool console
- ``pharmacy_voice/services/``: catalog, ledgers, rate limiter, call events,
  Retell client, metrics
- ``pharmacy_voice/tools/``: LangChain tools and the dispatcher
- ``pharmacy_voice/api/``: FastAPI routes and Pydantic schemas
"""
