"""Pydantic schemas for stations, lines and sections."""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from subway.helpers.section import MAX_DISTANCE

# ==================== Helper Functions ====================


def _validate_distinct_stations(up_station_id: int, down_station_id: int) -> None:
    """
    Validate that a section does not start and end at the same station.

    Raises:
        ValueError: If both station IDs are equal
    """
    if up_station_id == down_station_id:
        msg = "up_station_id and down_station_id must be different stations"
        raise ValueError(msg)


# ==================== Request Schemas ====================


class CreateStationRequest(BaseModel):
    """Request to create a station."""

    name: str = Field(..., min_length=1, max_length=255, description="Station name (e.g., 'Gangnam')")


class SectionRequest(BaseModel):
    """Request to add a section to an existing line."""

    up_station_id: int = Field(..., gt=0, description="Station the section starts from")
    down_station_id: int = Field(..., gt=0, description="Station the section ends at")
    distance: int = Field(..., gt=0, le=MAX_DISTANCE, description="Distance between the two stations")

    @model_validator(mode="after")
    def validate_stations(self) -> Self:
        """Reject sections that loop back to their own station."""
        _validate_distinct_stations(self.up_station_id, self.down_station_id)
        return self


class CreateLineRequest(SectionRequest):
    """Request to create a line together with its first section."""

    name: str = Field(..., min_length=1, max_length=255, description="Line name (e.g., 'Line 2')")
    color: str = Field(..., min_length=1, max_length=20, description="Display color (e.g., 'bg-green-600')")


class UpdateLineRequest(BaseModel):
    """Request to update line metadata. Sections are managed separately."""

    name: str = Field(..., min_length=1, max_length=255)
    color: str = Field(..., min_length=1, max_length=20)


# ==================== Response Schemas ====================


class StationResponse(BaseModel):
    """Response schema for a station."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class LineResponse(BaseModel):
    """Response schema for a line with its stations in path order."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str
    stations: list[StationResponse] = Field(
        default_factory=list,
        description="Stations from the up terminus to the down terminus, without duplicates",
    )


class SectionResponse(BaseModel):
    """Response schema for a single section."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    line_id: int
    up_station_id: int
    down_station_id: int
    distance: int
