"""Station API endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_db
from subway.models.subway import Station
from subway.schemas.subway import CreateStationRequest, StationResponse
from subway.services.station_service import StationService

router = APIRouter(prefix="/stations", tags=["stations"])


@router.post("", response_model=StationResponse, status_code=status.HTTP_201_CREATED)
async def create_station(
    request: CreateStationRequest,
    db: AsyncSession = Depends(get_db),
) -> Station:
    """
    Create a station.

    Raises:
        HTTPException: 409 if a station with the same name exists
    """
    service = StationService(db)
    return await service.create_station(request)


@router.get("", response_model=list[StationResponse])
async def list_stations(db: AsyncSession = Depends(get_db)) -> list[Station]:
    """List all stations ordered by ID."""
    service = StationService(db)
    return await service.list_stations()


@router.get("/{station_id}", response_model=StationResponse)
async def get_station(
    station_id: int,
    db: AsyncSession = Depends(get_db),
) -> Station:
    """
    Get a station by ID.

    Raises:
        HTTPException: 404 if station not found
    """
    service = StationService(db)
    return await service.get_station_by_id(station_id)


@router.delete("/{station_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_station(
    station_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a station.

    Raises:
        HTTPException: 404 if station not found, 409 if a line still passes through it
    """
    service = StationService(db)
    await service.delete_station(station_id)
