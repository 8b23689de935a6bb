"""
Section value type and mutation plans for the line topology engine.

A section is a directed edge between two distinct stations of one line.
Plans describe which sections the caller must create, update or remove
to apply one topology decision inside a single transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

# Distances are persisted as 32-bit signed integers
MAX_DISTANCE = 2**31 - 1


@dataclass(frozen=True, eq=False)
class Section:
    """
    Immutable section between an up station and a down station.

    Equality is by ``id`` when both sections are persisted, otherwise by
    ``(line_id, up_station_id, down_station_id, distance)``.

    Raises:
        InvalidSection: If both ends are the same station or the distance
            is outside ``1..MAX_DISTANCE``
    """

    line_id: int
    up_station_id: int
    down_station_id: int
    distance: int
    id: int | None = field(default=None, kw_only=True)

    def __post_init__(self) -> None:
        if self.up_station_id == self.down_station_id:
            raise InvalidSection(f"Section cannot start and end at station {self.up_station_id}.")
        if not 0 < self.distance <= MAX_DISTANCE:
            raise InvalidSection(f"Section distance must be between 1 and {MAX_DISTANCE}, got {self.distance}.")

    @property
    def key(self) -> tuple[int, int, int, int]:
        """Identity of an unsaved section."""
        return (self.line_id, self.up_station_id, self.down_station_id, self.distance)

    def as_row(self) -> tuple[int | None, int, int, int, int]:
        """Full ``(id, line_id, up, down, distance)`` tuple, ignoring equality rules."""
        return (self.id, *self.key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Section):
            return NotImplemented
        if self.id is not None or other.id is not None:
            return self.id == other.id
        return self.key == other.key

    def __hash__(self) -> int:
        if self.id is not None:
            return hash(("id", self.id))
        return hash(self.key)

    def is_up_station(self, station_id: int) -> bool:
        return self.up_station_id == station_id

    def is_down_station(self, station_id: int) -> bool:
        return self.down_station_id == station_id

    def has_station(self, station_id: int) -> bool:
        return self.is_up_station(station_id) or self.is_down_station(station_id)

    def is_new_last_station(self, current_up_station_id: int, current_down_station_id: int) -> bool:
        """
        Check whether this section extends the line beyond one of its termini.

        Args:
            current_up_station_id: Current up terminus of the line
            current_down_station_id: Current down terminus of the line

        Returns:
            True if the section ends at the up terminus (prepend) or starts
            at the down terminus (append), but not both

        Examples:
            >>> Section(1, 5, 10, 3).is_new_last_station(10, 30)
            True

            >>> Section(1, 10, 20, 3).is_new_last_station(10, 30)
            False
        """
        prepends = self.is_down_station(current_up_station_id)
        appends = self.is_up_station(current_down_station_id)
        return prepends != appends

    def with_id(self, section_id: int) -> Section:
        """Return a persisted copy of this section."""
        return replace(self, id=section_id)

    def __repr__(self) -> str:
        return (
            f"<Section(id={self.id}, line_id={self.line_id}, "
            f"{self.up_station_id}->{self.down_station_id}, distance={self.distance})>"
        )


@dataclass(frozen=True)
class AddPlan:
    """Result of adding a section: always one insert, plus an update for middle insertions."""

    create: Section
    update: Section | None = None

    @property
    def is_middle_insertion(self) -> bool:
        return self.update is not None


@dataclass(frozen=True)
class DeletePlan:
    """Result of deleting a station: always one removal, plus an update for middle deletions."""

    remove: Section
    update: Section | None = None

    @property
    def is_middle_deletion(self) -> bool:
        return self.update is not None


class InvalidSection(ValueError):
    """Raised when a section's stations or distance are not valid."""

    pass
