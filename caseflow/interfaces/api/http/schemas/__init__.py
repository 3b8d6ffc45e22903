"""DTOs HTTP (Pydantic)."""
