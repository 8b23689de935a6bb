"""Database models for the subway backend."""

# Import all models to register them with SQLAlchemy metadata
from subway.models.base import Base, BaseModel
from subway.models.subway import Line, LineSection, Station

__all__ = [
    "Base",
    "BaseModel",
    "Line",
    "LineSection",
    "Station",
]
