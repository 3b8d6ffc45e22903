"""Repository implementations (postgres / in_memory)."""
