"""Database package: engine, sessions and the declarative base."""

from .base import Base, SessionLocal, engine, get_db

__all__ = ["Base", "SessionLocal", "engine", "get_db"]
