"""
Name: ASGI Entrypoint (caseflow.main)

Responsibilities:
  - Re-export the FastAPI app for ASGI servers (uvicorn caseflow.main:app)

Notes/Constraints:
  - No configuration or IO should live here
"""

from caseflow.api.main import app

__all__ = ["app"]
