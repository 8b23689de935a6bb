"""SQL-backed store for line sections."""

from sqlalchemy import delete as sql_delete
from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from subway.helpers.section import AddPlan, DeletePlan, Section
from subway.models.subway import Line, LineSection, Station


class SectionStore:
    """
    Persistence boundary for the line topology engine.

    All writes go through the caller's session and are committed (or rolled
    back) by the caller, so a whole plan lands in one transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the section store.

        Args:
            db: Database session
        """
        self.db = db

    @staticmethod
    def to_domain(row: LineSection) -> Section:
        return Section(row.line_id, row.up_station_id, row.down_station_id, row.distance, id=row.id)

    async def lock_line(self, line_id: int) -> Line | None:
        """
        Lock a line row for the rest of the transaction.

        Mutations on one line are serialised by this lock, which must be
        taken before the line's sections are read. Dialects without row
        locks (SQLite) ignore FOR UPDATE.

        Args:
            line_id: Line ID

        Returns:
            The locked line, or None if it does not exist
        """
        result = await self.db.execute(
            select(Line).where(Line.id == line_id).with_for_update().execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_sections_by_line(self, line_id: int) -> list[Section]:
        """List every section of a line, in no particular order."""
        result = await self.db.execute(
            select(LineSection)
            .where(LineSection.line_id == line_id)
            .execution_options(populate_existing=True)
        )
        return [self.to_domain(row) for row in result.scalars().all()]

    async def station_exists(self, station_id: int) -> bool:
        result = await self.db.execute(select(exists().where(Station.id == station_id)))
        return bool(result.scalar())

    async def insert_section(self, section: Section) -> Section:
        """
        Insert a new section.

        Args:
            section: Unsaved section

        Returns:
            The section with its assigned id

        Raises:
            StoreError: If the section already has an id
        """
        if section.id is not None:
            raise StoreError(f"{section!r} is already persisted.")

        row = LineSection(
            line_id=section.line_id,
            up_station_id=section.up_station_id,
            down_station_id=section.down_station_id,
            distance=section.distance,
        )
        self.db.add(row)
        await self.db.flush()
        return section.with_id(row.id)

    async def update_section(self, section: Section) -> None:
        """
        Overwrite a stored section's stations and distance.

        Raises:
            StoreError: If no single row matches the section's id and line
        """
        result = await self.db.execute(
            update(LineSection)
            .where(LineSection.id == section.id, LineSection.line_id == section.line_id)
            .values(
                up_station_id=section.up_station_id,
                down_station_id=section.down_station_id,
                distance=section.distance,
            )
        )
        updated = result.rowcount  # type: ignore[attr-defined]
        if updated != 1:
            raise StoreError(f"Expected to update one section with id {section.id}, updated {updated}.")

    async def delete_section(self, section_id: int | None) -> None:
        """
        Delete a stored section.

        Raises:
            StoreError: If no single row has this id
        """
        result = await self.db.execute(sql_delete(LineSection).where(LineSection.id == section_id))
        deleted = result.rowcount  # type: ignore[attr-defined]
        if deleted != 1:
            raise StoreError(f"Expected to delete one section with id {section_id}, deleted {deleted}.")

    async def apply_add_plan(self, plan: AddPlan) -> Section:
        """
        Write an AddPlan.

        The split section is shortened before the new section is inserted,
        otherwise both would briefly share an end station and break the
        per-line unique constraints.

        Returns:
            The created section with its id
        """
        if plan.update is not None:
            await self.update_section(plan.update)
        return await self.insert_section(plan.create)

    async def apply_delete_plan(self, plan: DeletePlan) -> None:
        """
        Write a DeletePlan.

        The downstream section is removed before the upstream one is
        stretched over the merged gap, for the same constraint reason.
        """
        await self.delete_section(plan.remove.id)
        if plan.update is not None:
            await self.update_section(plan.update)


class StoreError(Exception):
    """Raised when a write does not affect exactly one section."""

    pass
