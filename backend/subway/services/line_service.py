"""Line management service.

Loads a line's sections into a Topology, asks it for a plan, and writes the
plan back in the same transaction. Section mutations hold a row lock on the
line, so concurrent requests on one line are applied one after the other.
"""

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager

import structlog
from fastapi import HTTPException, status
from sqlalchemy import delete as sql_delete
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.telemetry import service_span
from subway.helpers.line_topology import (
    CannotDeleteSoleSection,
    CorruptTopology,
    CycleWouldForm,
    DisconnectedStation,
    DistanceOverflow,
    DistanceTooLong,
    LineMismatch,
    StationNotOnLine,
    Topology,
    TopologyError,
)
from subway.helpers.section import AddPlan, InvalidSection, Section
from subway.models.subway import Line, LineSection, Station
from subway.schemas.subway import (
    CreateLineRequest,
    LineResponse,
    SectionRequest,
    StationResponse,
    UpdateLineRequest,
)
from subway.services.section_store import SectionStore, StoreError

logger = structlog.get_logger(__name__)

TOPOLOGY_ERROR_STATUS: dict[type[TopologyError], int] = {
    DisconnectedStation: status.HTTP_400_BAD_REQUEST,
    CycleWouldForm: status.HTTP_400_BAD_REQUEST,
    DistanceTooLong: status.HTTP_400_BAD_REQUEST,
    LineMismatch: status.HTTP_400_BAD_REQUEST,
    StationNotOnLine: status.HTTP_404_NOT_FOUND,
    CannotDeleteSoleSection: status.HTTP_409_CONFLICT,
    DistanceOverflow: status.HTTP_409_CONFLICT,
    CorruptTopology: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def topology_error_to_http(error: TopologyError) -> HTTPException:
    """
    Translate an engine error into an HTTP error.

    Args:
        error: Error raised by the topology engine

    Returns:
        HTTPException with the status for the error kind (400 if unknown)
    """
    status_code = next(
        (TOPOLOGY_ERROR_STATUS[kind] for kind in type(error).__mro__ if kind in TOPOLOGY_ERROR_STATUS),
        status.HTTP_400_BAD_REQUEST,
    )
    return HTTPException(status_code=status_code, detail=str(error))


class LineService:
    """Service for managing lines and their sections."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the line service.

        Args:
            db: Database session
        """
        self.db = db
        self.store = SectionStore(db)

    # ==================== Line Operations ====================

    async def create_line(self, request: CreateLineRequest) -> LineResponse:
        """
        Create a line together with its first section.

        Args:
            request: Line creation request

        Returns:
            Created line with its two stations

        Raises:
            HTTPException: 400 if a station does not exist, 409 if the name or color is taken
        """
        with service_span("line.create", "line-service") as span:
            await self._ensure_unique_line(request.name, request.color)
            await self._ensure_stations_exist(request.up_station_id, request.down_station_id)

            line = Line(name=request.name, color=request.color)
            try:
                self.db.add(line)
                await self.db.flush()
                first_section = await self.store.insert_section(
                    Section(line.id, request.up_station_id, request.down_station_id, request.distance)
                )
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Line name or color is already in use.",
                ) from e

            span.set_attribute("line.id", line.id)
            logger.info("line_created", line_id=line.id, name=line.name, section_id=first_section.id)
            return await self._to_response(line, Topology.of([first_section]).ordered_stations())

    async def list_lines(self) -> list[LineResponse]:
        result = await self.db.execute(select(Line).order_by(Line.id))
        return [
            await self._to_response(line, await self._ordered_station_ids(line.id))
            for line in result.scalars().all()
        ]

    async def get_line(self, line_id: int) -> LineResponse:
        """
        Get a line with its stations in path order.

        Raises:
            HTTPException: 404 if line not found, 500 if its sections are corrupt
        """
        line = await self._get_line_by_id(line_id)
        return await self._to_response(line, await self._ordered_station_ids(line_id))

    async def update_line(self, line_id: int, request: UpdateLineRequest) -> LineResponse:
        """
        Update line name and color.

        Raises:
            HTTPException: 404 if line not found, 409 if the name or color is taken
        """
        line = await self._get_line_by_id(line_id)
        await self._ensure_unique_line(request.name, request.color, exclude_line_id=line_id)

        line.name = request.name
        line.color = request.color
        await self.db.commit()
        await self.db.refresh(line)

        logger.info("line_updated", line_id=line_id)
        return await self._to_response(line, await self._ordered_station_ids(line_id))

    async def delete_line(self, line_id: int) -> None:
        """
        Delete a line and all of its sections.

        Raises:
            HTTPException: 404 if line not found
        """
        line = await self._get_line_by_id(line_id)

        await self.db.execute(sql_delete(LineSection).where(LineSection.line_id == line_id))
        await self.db.delete(line)
        await self.db.commit()
        logger.info("line_deleted", line_id=line_id)

    # ==================== Section Operations ====================

    async def list_sections(self, line_id: int) -> list[Section]:
        """
        List a line's sections from the up terminus to the down terminus.

        Raises:
            HTTPException: 404 if line not found, 500 if its sections are corrupt
        """
        await self._get_line_by_id(line_id)
        sections = await self.store.list_sections_by_line(line_id)
        if not sections:
            return []
        return self._build_topology(line_id, sections).ordered_sections()

    async def add_section(self, line_id: int, request: SectionRequest) -> LineResponse:
        """
        Add a section to a line.

        The section either extends one of the termini or splits an existing
        section that shares its up (or down) station.

        Args:
            line_id: Line ID
            request: Section to add

        Returns:
            The line with its updated station order

        Raises:
            HTTPException: 404 if line not found, 400 if the section is rejected,
                409 if the store rejects the write
        """
        with service_span("line.add_section", "line-service", line_id=line_id) as span:
            async with self._locked_line(line_id) as line:
                await self._ensure_stations_exist(request.up_station_id, request.down_station_id)
                topology = self._build_topology(line_id, await self.store.list_sections_by_line(line_id))

                try:
                    new_section = Section(line_id, request.up_station_id, request.down_station_id, request.distance)
                    plan = topology.add(new_section)
                except InvalidSection as e:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
                except TopologyError as e:
                    logger.warning(
                        "section_add_rejected",
                        line_id=line_id,
                        up_station_id=request.up_station_id,
                        down_station_id=request.down_station_id,
                        reason=type(e).__name__,
                    )
                    raise topology_error_to_http(e) from e

                created = await self.store.apply_add_plan(plan)

            span.set_attribute("line.middle_insertion", plan.is_middle_insertion)
            logger.info(
                "section_added",
                line_id=line_id,
                section_id=created.id,
                updated_section_id=plan.update.id if plan.update else None,
            )
            updated = topology.apply(AddPlan(create=created, update=plan.update))
            return await self._to_response(line, updated.ordered_stations())

    async def delete_section(self, line_id: int, station_id: int) -> None:
        """
        Remove a station from a line.

        Raises:
            HTTPException: 404 if line or station not found on the line,
                409 if the line has a single section
        """
        with service_span("line.delete_section", "line-service", line_id=line_id, station_id=station_id) as span:
            async with self._locked_line(line_id):
                topology = self._build_topology(line_id, await self.store.list_sections_by_line(line_id))

                try:
                    plan = topology.delete(station_id)
                except TopologyError as e:
                    logger.warning(
                        "section_delete_rejected",
                        line_id=line_id,
                        station_id=station_id,
                        reason=type(e).__name__,
                    )
                    raise topology_error_to_http(e) from e

                await self.store.apply_delete_plan(plan)

            span.set_attribute("line.middle_deletion", plan.is_middle_deletion)
            logger.info(
                "section_removed",
                line_id=line_id,
                station_id=station_id,
                removed_section_id=plan.remove.id,
                updated_section_id=plan.update.id if plan.update else None,
            )

    # ==================== Helpers ====================

    @asynccontextmanager
    async def _locked_line(self, line_id: int) -> AsyncGenerator[Line]:
        """
        Run a section mutation in one transaction holding the line's row lock.

        Commits when the block completes and rolls back on any error.

        Raises:
            HTTPException: 404 if line not found, 409 if the store rejects the write
        """
        try:
            if (line := await self.store.lock_line(line_id)) is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Line not found.",
                )
            yield line
            await self.db.commit()
        except (IntegrityError, StoreError) as e:
            await self.db.rollback()
            logger.warning("line_mutation_conflict", line_id=line_id, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="The line changed while the request was processed. Please retry.",
            ) from e
        except Exception:
            await self.db.rollback()
            raise

    def _build_topology(self, line_id: int, sections: Sequence[Section]) -> Topology:
        try:
            return Topology.of(sections)
        except CorruptTopology as e:
            logger.error("line_topology_corrupt", line_id=line_id, error=str(e))
            raise topology_error_to_http(e) from e

    async def _ordered_station_ids(self, line_id: int) -> list[int]:
        sections = await self.store.list_sections_by_line(line_id)
        if not sections:
            logger.warning("line_has_no_sections", line_id=line_id)
            return []
        return self._build_topology(line_id, sections).ordered_stations()

    async def _get_line_by_id(self, line_id: int) -> Line:
        if not (line := await self.db.get(Line, line_id)):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Line not found.",
            )
        return line

    async def _ensure_unique_line(self, name: str, color: str, *, exclude_line_id: int | None = None) -> None:
        query = select(Line.id).where(or_(Line.name == name, Line.color == color))
        if exclude_line_id is not None:
            query = query.where(Line.id != exclude_line_id)
        result = await self.db.execute(query)
        if result.first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Line name or color is already in use.",
            )

    async def _ensure_stations_exist(self, *station_ids: int) -> None:
        for station_id in station_ids:
            if not await self.store.station_exists(station_id):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Station {station_id} does not exist.",
                )

    async def _to_response(self, line: Line, station_ids: list[int]) -> LineResponse:
        stations: dict[int, Station] = {}
        if station_ids:
            result = await self.db.execute(select(Station).where(Station.id.in_(station_ids)))
            stations = {station.id: station for station in result.scalars()}

        return LineResponse(
            id=line.id,
            name=line.name,
            color=line.color,
            stations=[StationResponse.model_validate(stations[station_id]) for station_id in station_ids],
        )
