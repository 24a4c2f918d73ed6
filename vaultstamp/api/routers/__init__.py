"""Router exports for FastAPI composition."""

from . import health, stamp

__all__ = ["health", "stamp"]
