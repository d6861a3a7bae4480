"""Database package for the TinyDates service."""

from src.database.profile_repository import ProfileRepository

__all__ = ["ProfileRepository"]
