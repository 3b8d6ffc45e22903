"""Routers por feature (documents / derivations / permissions)."""
