"""ASGI application (FastAPI)."""
