"""Subway network data models."""

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from subway.models.base import BaseModel


class Station(BaseModel):
    """Station that lines can pass through."""

    __tablename__ = "stations"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation of the station."""
        return f"<Station(id={self.id}, name={self.name})>"


class Line(BaseModel):
    """
    Subway line metadata.

    The stations of a line are not stored here: they are derived from the
    line's sections, which form a single path from one terminus to the other.
    """

    __tablename__ = "lines"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    color: Mapped[str] = mapped_column(
        String(20),  # CSS color name or class, e.g. "bg-green-600"
        unique=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of the line."""
        return f"<Line(id={self.id}, name={self.name}, color={self.color})>"


class LineSection(BaseModel):
    """
    Directed section between two stations of a line.

    There is no ordering column: path order comes from matching each
    section's down station to the next section's up station.
    """

    __tablename__ = "sections"

    line_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    up_station_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    down_station_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    distance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("distance > 0", name="ck_sections_distance_positive"),
        CheckConstraint("up_station_id <> down_station_id", name="ck_sections_distinct_stations"),
        # A station starts at most one section and ends at most one section per line
        UniqueConstraint("line_id", "up_station_id", name="uq_sections_line_up_station"),
        UniqueConstraint("line_id", "down_station_id", name="uq_sections_line_down_station"),
    )

    def __repr__(self) -> str:
        """String representation of the section."""
        return (
            f"<LineSection(id={self.id}, line_id={self.line_id}, "
            f"{self.up_station_id}->{self.down_station_id}, distance={self.distance})>"
        )
