"""
Database base configuration
Imports all models to ensure they're registered with SQLModel metadata
"""

from sqlmodel import SQLModel

from tripplanner.db.models import (
    User,
    Category,
    UserPreference,
    Trip,
    TripUser,
    Place,
    TripPlaceLink,
    TripPlaceVote,
    TripItinerary,
)

# Export Base for use in migrations
Base = SQLModel.metadata

__all__ = ["Base", "SQLModel"]
