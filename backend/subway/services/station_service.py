"""Station management service."""

import structlog
from fastapi import HTTPException, status
from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from subway.models.subway import LineSection, Station
from subway.schemas.subway import CreateStationRequest

logger = structlog.get_logger(__name__)


class StationService:
    """Service for managing stations."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the station service.

        Args:
            db: Database session
        """
        self.db = db

    async def create_station(self, request: CreateStationRequest) -> Station:
        """
        Create a new station.

        Args:
            request: Station creation request

        Returns:
            Created station

        Raises:
            HTTPException: 409 if a station with the same name exists
        """
        existing = await self.db.execute(select(Station.id).where(Station.name == request.name))
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Station '{request.name}' already exists.",
            )

        station = Station(name=request.name)
        self.db.add(station)
        await self.db.commit()
        await self.db.refresh(station)

        logger.info("station_created", station_id=station.id, name=station.name)
        return station

    async def list_stations(self) -> list[Station]:
        result = await self.db.execute(select(Station).order_by(Station.id))
        return list(result.scalars().all())

    async def get_station_by_id(self, station_id: int) -> Station:
        """
        Get a station by ID.

        Raises:
            HTTPException: 404 if station not found
        """
        if not (station := await self.db.get(Station, station_id)):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Station not found.",
            )
        return station

    async def delete_station(self, station_id: int) -> None:
        """
        Delete a station that no line passes through.

        Raises:
            HTTPException: 404 if station not found, 409 if a section still uses it
        """
        station = await self.get_station_by_id(station_id)

        in_use = await self.db.execute(
            select(
                exists().where(
                    or_(
                        LineSection.up_station_id == station_id,
                        LineSection.down_station_id == station_id,
                    )
                )
            )
        )
        if in_use.scalar():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Station {station_id} is still on a line. Remove it from the line first.",
            )

        await self.db.delete(station)
        await self.db.commit()
        logger.info("station_deleted", station_id=station_id)
