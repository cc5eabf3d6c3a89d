"""Database package for Tastebase."""

from .base import Base, BaseModel
from .connection import DatabaseManager, db_manager

__all__ = ["Base", "BaseModel", "DatabaseManager", "db_manager"]
