"""Declarative base for the cosmos principal store."""

from sqlalchemy.orm import DeclarativeBase


class BaseEntity(DeclarativeBase):
    """Base class for users, roles and permissions."""
