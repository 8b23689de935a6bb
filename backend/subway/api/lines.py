"""Line and section API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_db
from subway.helpers.section import Section
from subway.schemas.subway import (
    CreateLineRequest,
    LineResponse,
    SectionRequest,
    SectionResponse,
    UpdateLineRequest,
)
from subway.services.line_service import LineService

router = APIRouter(prefix="/lines", tags=["lines"])


# ==================== Line Endpoints ====================


@router.post("", response_model=LineResponse, status_code=status.HTTP_201_CREATED)
async def create_line(
    request: CreateLineRequest,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Create a line and its first section.

    Args:
        request: Line name, color and first section
        db: Database session

    Returns:
        Created line with its two stations

    Raises:
        HTTPException: 400 if a station does not exist, 409 if the name or color is taken
    """
    service = LineService(db)
    return await service.create_line(request)


@router.get("", response_model=list[LineResponse])
async def list_lines(db: AsyncSession = Depends(get_db)) -> list[LineResponse]:
    """List all lines, each with its stations in path order."""
    service = LineService(db)
    return await service.list_lines()


@router.get("/{line_id}", response_model=LineResponse)
async def get_line(
    line_id: int,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Get a line with its stations from the up terminus to the down terminus.

    Raises:
        HTTPException: 404 if line not found
    """
    service = LineService(db)
    return await service.get_line(line_id)


@router.put("/{line_id}", response_model=LineResponse)
async def update_line(
    line_id: int,
    request: UpdateLineRequest,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Update line name and color.

    Raises:
        HTTPException: 404 if line not found, 409 if the name or color is taken
    """
    service = LineService(db)
    return await service.update_line(line_id, request)


@router.delete("/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_line(
    line_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a line and all of its sections.

    Raises:
        HTTPException: 404 if line not found
    """
    service = LineService(db)
    await service.delete_line(line_id)


# ==================== Section Endpoints ====================


@router.get("/{line_id}/sections", response_model=list[SectionResponse])
async def list_sections(
    line_id: int,
    db: AsyncSession = Depends(get_db),
) -> list[Section]:
    """
    List a line's sections in path order.

    Raises:
        HTTPException: 404 if line not found
    """
    service = LineService(db)
    return await service.list_sections(line_id)


@router.post("/{line_id}/sections", response_model=LineResponse, status_code=status.HTTP_201_CREATED)
async def add_section(
    line_id: int,
    request: SectionRequest,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Add a section to a line.

    The section must connect to exactly one station already on the line.
    It either extends a terminus or splits an existing section, in which
    case it must be shorter than the section it splits.

    Args:
        line_id: Line ID
        request: Section to add
        db: Database session

    Returns:
        The line with its updated station order

    Raises:
        HTTPException: 400 if the section is rejected, 404 if line not found
    """
    service = LineService(db)
    return await service.add_section(line_id, request)


@router.delete("/{line_id}/sections", status_code=status.HTTP_204_NO_CONTENT)
async def delete_section(
    line_id: int,
    station_id: int = Query(..., gt=0, description="Station to remove from the line"),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Remove a station from a line.

    Removing a middle station merges its two sections into one whose
    distance is the sum of both.

    Raises:
        HTTPException: 404 if line not found or station not on the line,
            409 if the line has only one section
    """
    service = LineService(db)
    await service.delete_section(line_id, station_id)
