"""
Line topology engine.

Pure, in-memory model of one subway line as a single simple directed path
of sections. A Topology is built from a snapshot of stored sections, asked
for one decision, and discarded. Mutations never touch storage: ``add`` and
``delete`` return plans that the caller applies in a single transaction.

Station and section lookups go through two indexes (up station -> section,
down station -> section), so traversal is linear in the number of sections.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import replace

from subway.helpers.section import MAX_DISTANCE, AddPlan, DeletePlan, Section


class Topology:
    """
    Ordered path of sections belonging to one line.

    Instances are immutable; ``apply`` returns a new Topology.

    Raises:
        CorruptTopology: If the sections are empty, span several lines,
            or do not form a single simple path
    """

    __slots__ = ("_by_down", "_by_up", "_first", "_last", "_line_id", "_sections")

    def __init__(self, sections: Iterable[Section]) -> None:
        self._sections = tuple(sections)
        if not self._sections:
            raise CorruptTopology("A line must have at least one section.")

        line_ids = {section.line_id for section in self._sections}
        if len(line_ids) != 1:
            raise CorruptTopology(f"Sections belong to more than one line: {sorted(line_ids)}.")
        self._line_id = line_ids.pop()

        self._by_up: dict[int, Section] = {}
        self._by_down: dict[int, Section] = {}
        for section in self._sections:
            if section.up_station_id in self._by_up:
                raise CorruptTopology(f"Station {section.up_station_id} starts more than one section.")
            if section.down_station_id in self._by_down:
                raise CorruptTopology(f"Station {section.down_station_id} ends more than one section.")
            self._by_up[section.up_station_id] = section
            self._by_down[section.down_station_id] = section

        up_ends = [s for s in self._sections if s.up_station_id not in self._by_down]
        down_ends = [s for s in self._sections if s.down_station_id not in self._by_up]
        if len(up_ends) != 1 or len(down_ends) != 1:
            raise CorruptTopology(
                f"Line {self._line_id} must have exactly one up terminus and one down terminus, "
                f"found {len(up_ends)} and {len(down_ends)}."
            )
        self._first = up_ends[0]
        self._last = down_ends[0]

        # A detached loop leaves the termini intact, so walk the whole path once
        self.ordered_stations()

    @classmethod
    def of(cls, sections: Iterable[Section]) -> Topology:
        """Build a Topology from stored sections given in any order."""
        return cls(sections)

    # ==================== Accessors ====================

    @property
    def line_id(self) -> int:
        return self._line_id

    @property
    def sections(self) -> tuple[Section, ...]:
        """Sections in the order they were supplied."""
        return self._sections

    @property
    def up_terminus(self) -> int:
        return self._first.up_station_id

    @property
    def down_terminus(self) -> int:
        return self._last.down_station_id

    @property
    def station_ids(self) -> frozenset[int]:
        return frozenset(self._by_up) | frozenset(self._by_down)

    def __contains__(self, station_id: object) -> bool:
        return station_id in self._by_up or station_id in self._by_down

    def __len__(self) -> int:
        return len(self._sections)

    def __iter__(self) -> Iterator[Section]:
        return iter(self.ordered_sections())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Topology):
            return NotImplemented
        return self._line_id == other._line_id and frozenset(self._sections) == frozenset(other._sections)

    def __hash__(self) -> int:
        return hash((self._line_id, frozenset(self._sections)))

    def __repr__(self) -> str:
        return f"<Topology(line_id={self._line_id}, sections={len(self._sections)})>"

    # ==================== Traversal ====================

    def ordered_stations(self) -> list[int]:
        """
        List station ids from the up terminus to the down terminus.

        Returns:
            Station ids in path order; always one more than the number of sections

        Raises:
            CorruptTopology: If the path breaks before every section is visited
        """
        stations = [self._first.up_station_id, self._first.down_station_id]
        expected = len(self._sections) + 1
        while len(stations) < expected:
            next_section = self._by_up.get(stations[-1])
            if next_section is None:
                raise CorruptTopology(
                    f"Line {self._line_id} path breaks after station {stations[-1]} "
                    f"({len(stations)} of {expected} stations reached)."
                )
            stations.append(next_section.down_station_id)
        return stations

    def ordered_sections(self) -> list[Section]:
        """List sections from the up terminus to the down terminus."""
        stations = self.ordered_stations()
        return [self._by_up[station_id] for station_id in stations[:-1]]

    # ==================== Mutations ====================

    def add(self, new_section: Section) -> AddPlan:
        """
        Plan the insertion of a section.

        A section that extends either terminus is inserted as is. A section
        that shares its up station (or down station) with an existing section
        splits that section in two, and the existing section is shortened to
        cover the remaining gap.

        Args:
            new_section: Section to add; usually not yet persisted

        Returns:
            AddPlan with the section to create and, for middle insertions,
            the shortened existing section to update

        Raises:
            LineMismatch: If the section belongs to another line
            DisconnectedStation: If neither station is on the line
            CycleWouldForm: If both stations are already on the line
            DistanceTooLong: If a middle insertion is not shorter than the gap it splits
        """
        if new_section.line_id != self._line_id:
            raise LineMismatch(new_section.line_id, self._line_id)

        has_up = new_section.up_station_id in self
        has_down = new_section.down_station_id in self
        if not has_up and not has_down:
            raise DisconnectedStation(new_section.up_station_id, new_section.down_station_id)
        if has_up and has_down:
            raise CycleWouldForm(new_section.up_station_id, new_section.down_station_id)

        if new_section.is_new_last_station(self.up_terminus, self.down_terminus):
            return AddPlan(create=new_section)
        return self._add_middle_section(new_section, shares_up_station=has_up)

    def _add_middle_section(self, new_section: Section, *, shares_up_station: bool) -> AddPlan:
        if shares_up_station:
            near_section = self._by_up.get(new_section.up_station_id)
        else:
            near_section = self._by_down.get(new_section.down_station_id)
        if near_section is None:
            raise CorruptTopology(f"No section found next to {new_section!r} on line {self._line_id}.")

        if new_section.distance >= near_section.distance:
            raise DistanceTooLong(new_section.distance, near_section.distance)

        remaining = near_section.distance - new_section.distance
        if shares_up_station:
            residual = replace(near_section, up_station_id=new_section.down_station_id, distance=remaining)
        else:
            residual = replace(near_section, down_station_id=new_section.up_station_id, distance=remaining)
        return AddPlan(create=new_section, update=residual)

    def delete(self, station_id: int) -> DeletePlan:
        """
        Plan the removal of a station from the line.

        Removing a terminus drops its section. Removing a middle station
        drops the section downstream of it and stretches the upstream
        section over the merged gap, so the upstream section keeps its id.

        Args:
            station_id: Station to remove

        Returns:
            DeletePlan with the section to remove and, for middle stations,
            the merged section to update

        Raises:
            StationNotOnLine: If the station is not on the line
            CannotDeleteSoleSection: If the line has a single section
            DistanceOverflow: If the merged distance exceeds MAX_DISTANCE
        """
        if station_id not in self:
            raise StationNotOnLine(station_id, self._line_id)
        if len(self._sections) == 1:
            raise CannotDeleteSoleSection(self._line_id)

        if self._first.is_up_station(station_id):
            return DeletePlan(remove=self._first)
        if self._last.is_down_station(station_id):
            return DeletePlan(remove=self._last)

        upper = self._by_down.get(station_id)
        lower = self._by_up.get(station_id)
        if upper is None or lower is None:
            raise CorruptTopology(f"Station {station_id} is not connected on both sides of line {self._line_id}.")

        merged_distance = upper.distance + lower.distance
        if merged_distance > MAX_DISTANCE:
            raise DistanceOverflow(merged_distance)

        merged = replace(upper, down_station_id=lower.down_station_id, distance=merged_distance)
        return DeletePlan(remove=lower, update=merged)

    def apply(self, plan: AddPlan | DeletePlan) -> Topology:
        """
        Return the Topology that results from applying a plan in memory.

        Args:
            plan: Plan produced by ``add`` or ``delete`` on this Topology

        Returns:
            New Topology; this one is left unchanged

        Raises:
            CorruptTopology: If the plan does not fit this Topology
        """
        replaced = self._original_of(plan.update) if plan.update is not None else None
        sections = [section for section in self._sections if section is not replaced]

        if isinstance(plan, DeletePlan):
            if plan.remove not in sections:
                raise CorruptTopology(f"{plan.remove!r} is not on line {self._line_id}.")
            sections.remove(plan.remove)
        else:
            sections.append(plan.create)

        if plan.update is not None:
            sections.append(plan.update)
        return Topology(sections)

    def _original_of(self, updated: Section) -> Section:
        # Updates keep either their up station or their down station
        original = self._by_up.get(updated.up_station_id)
        if original is None:
            original = self._by_down.get(updated.down_station_id)
        if original is None:
            raise CorruptTopology(f"{updated!r} does not replace any section on line {self._line_id}.")
        return original


# Custom domain exceptions


class TopologyError(Exception):
    """Base exception for line topology errors."""


class DisconnectedStation(TopologyError):
    """Raised when neither station of a new section is on the line."""

    def __init__(self, up_station_id: int, down_station_id: int) -> None:
        self.up_station_id = up_station_id
        self.down_station_id = down_station_id
        super().__init__(
            f"Neither station {up_station_id} nor station {down_station_id} is on the line. "
            "A new section must connect to an existing station."
        )


class CycleWouldForm(TopologyError):
    """Raised when both stations of a new section are already on the line."""

    def __init__(self, up_station_id: int, down_station_id: int) -> None:
        self.up_station_id = up_station_id
        self.down_station_id = down_station_id
        super().__init__(f"Stations {up_station_id} and {down_station_id} are both already on the line.")


class DistanceTooLong(TopologyError):
    """Raised when a middle insertion is not shorter than the section it splits."""

    def __init__(self, distance: int, existing_distance: int) -> None:
        self.distance = distance
        self.existing_distance = existing_distance
        super().__init__(
            f"New section distance {distance} must be less than the existing distance {existing_distance}."
        )


class LineMismatch(TopologyError):
    """Raised when a section is added to a topology of another line."""

    def __init__(self, section_line_id: int, line_id: int) -> None:
        self.section_line_id = section_line_id
        self.line_id = line_id
        super().__init__(f"Section belongs to line {section_line_id}, not line {line_id}.")


class StationNotOnLine(TopologyError):
    """Raised when deleting a station the line does not contain."""

    def __init__(self, station_id: int, line_id: int) -> None:
        self.station_id = station_id
        self.line_id = line_id
        super().__init__(f"Station {station_id} is not on line {line_id}.")


class CannotDeleteSoleSection(TopologyError):
    """Raised when deleting a station would leave the line without sections."""

    def __init__(self, line_id: int) -> None:
        self.line_id = line_id
        super().__init__(f"Line {line_id} has only one section; its stations cannot be removed.")


class DistanceOverflow(TopologyError):
    """Raised when merging two sections exceeds the distance domain."""

    def __init__(self, distance: int) -> None:
        self.distance = distance
        super().__init__(f"Merged distance {distance} exceeds the maximum of {MAX_DISTANCE}.")


class CorruptTopology(TopologyError):
    """
    Raised when stored sections violate the path invariant.

    This indicates damaged data rather than a bad request, so callers
    should surface it as a server error.
    """
