"""SQLAlchemy models."""
from .session import SessionValue

__all__ = ["SessionValue"]
