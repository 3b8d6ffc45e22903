"""Infraestructura: pool de conexiones y repositorios (PostgreSQL / in-memory)."""
