"""
Database module for Cognitia.

Exports:
- DatabaseManager: Database connection and session management
- get_database_manager: Factory function for DatabaseManager
- Models: User, Report
- Base: SQLAlchemy declarative base
"""

from .db import DatabaseManager, get_database_manager
from .models import Base, User, Report

__all__ = [
    # Database management
    "DatabaseManager",
    "get_database_manager",

    # ORM models
    "Base",
    "User",
    "Report",
]
