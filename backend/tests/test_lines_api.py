"""Tests for line and section API endpoints."""

import pytest
from fastapi import status
from httpx import AsyncClient

from subway.helpers.section import MAX_DISTANCE
from subway.models.subway import Station

from tests.helpers.types import LineFactory


class TestLinesAPI:
    """Test cases for line and section API endpoints."""

    @pytest.fixture
    def ids(self, stations: list[Station]) -> dict[str, int]:
        """Station IDs by name, read before any request can expire the ORM objects."""
        return {station.name: station.id for station in stations}

    @pytest.fixture
    async def line_id(self, async_client: AsyncClient, ids: dict[str, int]) -> int:
        """Line 2 created through the API: Gangnam -(10)-> Seolleung."""
        response = await async_client.post(
            "/api/v1/lines",
            json={
                "name": "Line 2",
                "color": "bg-green-600",
                "up_station_id": ids["Gangnam"],
                "down_station_id": ids["Seolleung"],
                "distance": 10,
            },
        )
        assert response.status_code == status.HTTP_201_CREATED
        return response.json()["id"]

    async def _station_names(self, async_client: AsyncClient, line_id: int) -> list[str]:
        response = await async_client.get(f"/api/v1/lines/{line_id}")
        assert response.status_code == status.HTTP_200_OK
        return [station["name"] for station in response.json()["stations"]]

    # ==================== Line CRUD Tests ====================

    @pytest.mark.asyncio
    async def test_create_line(self, async_client: AsyncClient, ids: dict[str, int]) -> None:
        """Test creating a line with its first section."""
        response = await async_client.post(
            "/api/v1/lines",
            json={
                "name": "Line 2",
                "color": "bg-green-600",
                "up_station_id": ids["Gangnam"],
                "down_station_id": ids["Yeoksam"],
                "distance": 10,
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["name"] == "Line 2"
        assert data["color"] == "bg-green-600"
        assert data["stations"] == [
            {"id": ids["Gangnam"], "name": "Gangnam"},
            {"id": ids["Yeoksam"], "name": "Yeoksam"},
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"distance": 0},
            {"distance": MAX_DISTANCE + 1},
            {"name": ""},
            {"up_station_id": 0},
        ],
    )
    async def test_create_line_validation(
        self, async_client: AsyncClient, ids: dict[str, int], overrides: dict[str, object]
    ) -> None:
        """Test request validation for new lines."""
        body = {
            "name": "Line 2",
            "color": "bg-green-600",
            "up_station_id": ids["Gangnam"],
            "down_station_id": ids["Yeoksam"],
            "distance": 10,
            **overrides,
        }

        response = await async_client.post("/api/v1/lines", json=body)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    @pytest.mark.asyncio
    async def test_create_line_same_stations(self, async_client: AsyncClient, ids: dict[str, int]) -> None:
        """Test that a line cannot start and end at the same station."""
        response = await async_client.post(
            "/api/v1/lines",
            json={
                "name": "Line 2",
                "color": "bg-green-600",
                "up_station_id": ids["Gangnam"],
                "down_station_id": ids["Gangnam"],
                "distance": 10,
            },
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
        assert "must be different stations" in response.text

    @pytest.mark.asyncio
    async def test_create_line_duplicate_name(
        self, async_client: AsyncClient, line_id: int, ids: dict[str, int]
    ) -> None:
        """Test that line names are unique."""
        response = await async_client.post(
            "/api/v1/lines",
            json={
                "name": "Line 2",
                "color": "bg-red-600",
                "up_station_id": ids["Samseong"],
                "down_station_id": ids["Jamsil"],
                "distance": 3,
            },
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_list_lines(
        self, async_client: AsyncClient, line_id: int, make_line: LineFactory, stations: list[Station]
    ) -> None:
        """Test listing lines with their stations."""
        await make_line("Line 9", "bg-amber-600", [stations[5], stations[4]], [8])

        response = await async_client.get("/api/v1/lines")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [line["name"] for line in data] == ["Line 2", "Line 9"]
        assert [station["name"] for station in data[1]["stations"]] == ["Sindorim", "Jamsil"]

    @pytest.mark.asyncio
    async def test_get_line_not_found(self, async_client: AsyncClient) -> None:
        """Test that an unknown line is a 404."""
        response = await async_client.get("/api/v1/lines/999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Line not found."

    @pytest.mark.asyncio
    async def test_update_line(self, async_client: AsyncClient, line_id: int) -> None:
        """Test renaming and recoloring a line."""
        response = await async_client.put(
            f"/api/v1/lines/{line_id}",
            json={"name": "Line 2 (Circle)", "color": "bg-emerald-600"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Line 2 (Circle)"
        assert response.json()["color"] == "bg-emerald-600"
        assert await self._station_names(async_client, line_id) == ["Gangnam", "Seolleung"]

    @pytest.mark.asyncio
    async def test_delete_line(self, async_client: AsyncClient, line_id: int) -> None:
        """Test deleting a line and its sections."""
        response = await async_client.delete(f"/api/v1/lines/{line_id}")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert (await async_client.get(f"/api/v1/lines/{line_id}")).status_code == status.HTTP_404_NOT_FOUND
        assert (await async_client.get(f"/api/v1/lines/{line_id}/sections")).status_code == status.HTTP_404_NOT_FOUND

    # ==================== Section Tests ====================

    @pytest.mark.asyncio
    async def test_add_section_to_down_terminus(
        self, async_client: AsyncClient, line_id: int, ids: dict[str, int]
    ) -> None:
        """Test appending a section after the down terminus."""
        response = await async_client.post(
            f"/api/v1/lines/{line_id}/sections",
            json={"up_station_id": ids["Seolleung"], "down_station_id": ids["Samseong"], "distance": 5},
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert [station["name"] for station in response.json()["stations"]] == ["Gangnam", "Seolleung", "Samseong"]

    @pytest.mark.asyncio
    async def test_add_section_in_middle(self, async_client: AsyncClient, line_id: int, ids: dict[str, int]) -> None:
        """Test splitting a section and reading back its distances."""
        response = await async_client.post(
            f"/api/v1/lines/{line_id}/sections",
            json={"up_station_id": ids["Gangnam"], "down_station_id": ids["Yeoksam"], "distance": 4},
        )
        assert response.status_code == status.HTTP_201_CREATED

        sections = (await async_client.get(f"/api/v1/lines/{line_id}/sections")).json()
        assert [(s["up_station_id"], s["down_station_id"], s["distance"]) for s in sections] == [
            (ids["Gangnam"], ids["Yeoksam"], 4),
            (ids["Yeoksam"], ids["Seolleung"], 6),
        ]
        assert all(s["line_id"] == line_id for s in sections)

    @pytest.mark.asyncio
    async def test_add_section_too_long(self, async_client: AsyncClient, line_id: int, ids: dict[str, int]) -> None:
        """Test that a middle section must be shorter than the gap it splits."""
        response = await async_client.post(
            f"/api/v1/lines/{line_id}/sections",
            json={"up_station_id": ids["Gangnam"], "down_station_id": ids["Yeoksam"], "distance": 10},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "must be less than the existing distance 10" in response.json()["detail"]
        assert await self._station_names(async_client, line_id) == ["Gangnam", "Seolleung"]

    @pytest.mark.asyncio
    async def test_add_section_both_stations_on_line(
        self, async_client: AsyncClient, line_id: int, ids: dict[str, int]
    ) -> None:
        """Test that a section between two stations of the line is rejected."""
        response = await async_client.post(
            f"/api/v1/lines/{line_id}/sections",
            json={"up_station_id": ids["Seolleung"], "down_station_id": ids["Gangnam"], "distance": 3},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "both already on the line" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_add_section_no_station_on_line(
        self, async_client: AsyncClient, line_id: int, ids: dict[str, int]
    ) -> None:
        """Test that a section must touch the line."""
        response = await async_client.post(
            f"/api/v1/lines/{line_id}/sections",
            json={"up_station_id": ids["Samseong"], "down_station_id": ids["Jamsil"], "distance": 3},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "must connect to an existing station" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_add_section_unknown_line(self, async_client: AsyncClient, ids: dict[str, int]) -> None:
        """Test that adding to an unknown line is a 404."""
        response = await async_client.post(
            "/api/v1/lines/999/sections",
            json={"up_station_id": ids["Gangnam"], "down_station_id": ids["Yeoksam"], "distance": 3},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_middle_station(self, async_client: AsyncClient, line_id: int, ids: dict[str, int]) -> None:
        """Test that removing a middle station merges its sections."""
        await async_client.post(
            f"/api/v1/lines/{line_id}/sections",
            json={"up_station_id": ids["Gangnam"], "down_station_id": ids["Yeoksam"], "distance": 4},
        )
        upstream = (await async_client.get(f"/api/v1/lines/{line_id}/sections")).json()[0]

        response = await async_client.delete(
            f"/api/v1/lines/{line_id}/sections", params={"station_id": ids["Yeoksam"]}
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        sections = (await async_client.get(f"/api/v1/lines/{line_id}/sections")).json()
        assert sections == [
            {
                "id": upstream["id"],
                "line_id": line_id,
                "up_station_id": ids["Gangnam"],
                "down_station_id": ids["Seolleung"],
                "distance": 10,
            }
        ]

    @pytest.mark.asyncio
    async def test_delete_terminus(self, async_client: AsyncClient, line_id: int, ids: dict[str, int]) -> None:
        """Test that removing a terminus shortens the line."""
        await async_client.post(
            f"/api/v1/lines/{line_id}/sections",
            json={"up_station_id": ids["Seolleung"], "down_station_id": ids["Samseong"], "distance": 5},
        )

        response = await async_client.delete(
            f"/api/v1/lines/{line_id}/sections", params={"station_id": ids["Samseong"]}
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert await self._station_names(async_client, line_id) == ["Gangnam", "Seolleung"]

    @pytest.mark.asyncio
    async def test_delete_only_section(self, async_client: AsyncClient, line_id: int, ids: dict[str, int]) -> None:
        """Test that a line keeps at least one section."""
        response = await async_client.delete(
            f"/api/v1/lines/{line_id}/sections", params={"station_id": ids["Gangnam"]}
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert await self._station_names(async_client, line_id) == ["Gangnam", "Seolleung"]

    @pytest.mark.asyncio
    async def test_delete_station_not_on_line(
        self, async_client: AsyncClient, line_id: int, ids: dict[str, int]
    ) -> None:
        """Test that removing a station the line does not serve is a 404."""
        response = await async_client.delete(
            f"/api/v1/lines/{line_id}/sections", params={"station_id": ids["Jamsil"]}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_section_requires_station_id(self, async_client: AsyncClient, line_id: int) -> None:
        """Test that the station to remove must be given."""
        response = await async_client.delete(f"/api/v1/lines/{line_id}/sections")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    @pytest.mark.asyncio
    async def test_build_line_station_by_station(self, async_client: AsyncClient, ids: dict[str, int]) -> None:
        """Test a full line built and trimmed through the API."""
        response = await async_client.post(
            "/api/v1/lines",
            json={
                "name": "Line 2",
                "color": "bg-green-600",
                "up_station_id": ids["Yeoksam"],
                "down_station_id": ids["Jamsil"],
                "distance": 20,
            },
        )
        line_id = response.json()["id"]

        for up, down, distance in [
            ("Gangnam", "Yeoksam", 3),  # prepend
            ("Jamsil", "Sindorim", 7),  # append
            ("Yeoksam", "Seolleung", 5),  # split after Yeoksam
            ("Samseong", "Jamsil", 4),  # split before Jamsil
        ]:
            response = await async_client.post(
                f"/api/v1/lines/{line_id}/sections",
                json={"up_station_id": ids[up], "down_station_id": ids[down], "distance": distance},
            )
            assert response.status_code == status.HTTP_201_CREATED, response.text

        assert await self._station_names(async_client, line_id) == [
            "Gangnam",
            "Yeoksam",
            "Seolleung",
            "Samseong",
            "Jamsil",
            "Sindorim",
        ]
        sections = (await async_client.get(f"/api/v1/lines/{line_id}/sections")).json()
        assert [s["distance"] for s in sections] == [3, 5, 11, 4, 7]

        for station in ["Seolleung", "Gangnam", "Sindorim"]:
            response = await async_client.delete(
                f"/api/v1/lines/{line_id}/sections", params={"station_id": ids[station]}
            )
            assert response.status_code == status.HTTP_204_NO_CONTENT

        assert await self._station_names(async_client, line_id) == ["Yeoksam", "Samseong", "Jamsil"]
        sections = (await async_client.get(f"/api/v1/lines/{line_id}/sections")).json()
        assert [s["distance"] for s in sections] == [16, 4]
