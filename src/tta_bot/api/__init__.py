"""
FastAPI REST API Layer for tta-bot.

This package defines all HTTP endpoints used by the web UI:
    - routes.py: /api/* endpoints, the root summary and /metrics
    - schemas.py: Request Pydantic models
    - dependencies.py: Per-app service container and FastAPI dependencies
"""
