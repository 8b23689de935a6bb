"""Tests for database models and their constraints."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.models import Line, LineSection, Station

from tests.helpers.types import LineFactory


class TestStationModel:
    """Tests for Station model."""

    @pytest.mark.asyncio
    async def test_create_station(self, db_session: AsyncSession) -> None:
        """Test creating a station sets ID and timestamps."""
        station = Station(name="Gangnam")
        db_session.add(station)
        await db_session.commit()
        await db_session.refresh(station)

        assert station.id is not None
        assert station.created_at is not None
        assert station.updated_at is not None
        assert "Gangnam" in repr(station)

    @pytest.mark.asyncio
    async def test_duplicate_station_name_raises_error(self, db_session: AsyncSession) -> None:
        """Test that station names are unique."""
        db_session.add(Station(name="Gangnam"))
        await db_session.commit()

        db_session.add(Station(name="Gangnam"))
        with pytest.raises(IntegrityError):
            await db_session.commit()


class TestLineSectionModel:
    """Tests for LineSection model constraints."""

    @pytest.mark.asyncio
    async def test_duplicate_line_color_raises_error(self, db_session: AsyncSession) -> None:
        """Test that two lines cannot share a color."""
        db_session.add(Line(name="Line 2", color="bg-green-600"))
        await db_session.commit()

        db_session.add(Line(name="Line 9", color="bg-green-600"))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("distance", [0, -4])
    async def test_non_positive_distance_raises_error(
        self, db_session: AsyncSession, stations: list[Station], make_line: LineFactory, distance: int
    ) -> None:
        """Test that the distance check constraint rejects non-positive values."""
        line = await make_line("Line 2", "bg-green-600", stations[:2], [5])

        db_session.add(
            LineSection(
                line_id=line.id, up_station_id=stations[1].id, down_station_id=stations[2].id, distance=distance
            )
        )
        with pytest.raises(IntegrityError):
            await db_session.commit()

    @pytest.mark.asyncio
    async def test_station_starting_two_sections_raises_error(
        self, db_session: AsyncSession, stations: list[Station], make_line: LineFactory
    ) -> None:
        """Test that a station may start at most one section of a line."""
        line = await make_line("Line 2", "bg-green-600", stations[:2], [5])

        db_session.add(
            LineSection(line_id=line.id, up_station_id=stations[0].id, down_station_id=stations[2].id, distance=3)
        )
        with pytest.raises(IntegrityError):
            await db_session.commit()

    @pytest.mark.asyncio
    async def test_same_station_pair_allowed_on_different_lines(
        self, db_session: AsyncSession, stations: list[Station], make_line: LineFactory
    ) -> None:
        """Test that uniqueness is scoped to one line."""
        await make_line("Line 2", "bg-green-600", stations[:2], [5])
        await make_line("Line 9", "bg-amber-600", stations[:2], [7])

        result = await db_session.execute(select(LineSection.distance).order_by(LineSection.distance))
        assert list(result.scalars()) == [5, 7]

    @pytest.mark.asyncio
    async def test_deleting_station_on_line_raises_error(
        self, db_session: AsyncSession, stations: list[Station], make_line: LineFactory
    ) -> None:
        """Test that a station referenced by a section cannot be deleted."""
        await make_line("Line 2", "bg-green-600", stations[:2], [5])

        await db_session.delete(stations[0])
        with pytest.raises(IntegrityError):
            await db_session.commit()
