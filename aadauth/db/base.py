"""Declarative base for AAD-AUTH SQLAlchemy models."""

from sqlalchemy.orm import DeclarativeBase


class BaseEntity(DeclarativeBase):
    """Base class for all AAD-AUTH database entities."""
