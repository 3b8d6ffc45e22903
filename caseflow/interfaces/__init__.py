"""Interfaces (adapters de entrada)."""
