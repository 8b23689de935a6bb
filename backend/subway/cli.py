#!/usr/bin/env python3
"""CLI tool for managing the subway network from a shell.

Commands go through the same services as the HTTP API, so the same
validation rules and topology checks apply.

Usage:
    # Create stations
    uv run python -m subway.cli create-station "Gangnam"

    # Create a line with its first section
    uv run python -m subway.cli create-line "Line 2" bg-green-600 1 2 10

    # Extend or split a line
    uv run python -m subway.cli add-section 1 2 3 5

    # Remove a station from a line
    uv run python -m subway.cli remove-station 1 2

    # Show a line's stations in path order
    uv run python -m subway.cli show-line 1
"""

import argparse
import asyncio
import sys

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_session_factory
from subway.schemas.subway import CreateLineRequest, CreateStationRequest, SectionRequest
from subway.services.line_service import LineService
from subway.services.station_service import StationService


async def cmd_create_station(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Create a station.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        station = await StationService(session).create_station(CreateStationRequest(name=args.name))
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"✅ Created station {station.id}: {station.name}")
    return 0


async def cmd_list_stations(args: argparse.Namespace, session: AsyncSession) -> int:
    stations = await StationService(session).list_stations()
    if not stations:
        print("No stations found.")
        return 0

    for station in stations:
        print(f"{station.id:>6}  {station.name}")
    return 0


async def cmd_create_line(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Create a line with its first section.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        request = CreateLineRequest(
            name=args.name,
            color=args.color,
            up_station_id=args.up_station_id,
            down_station_id=args.down_station_id,
            distance=args.distance,
        )
        line = await LineService(session).create_line(request)
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"✅ Created line {line.id}: {line.name} ({line.color})")
    return 0


async def cmd_list_lines(args: argparse.Namespace, session: AsyncSession) -> int:
    lines = await LineService(session).list_lines()
    if not lines:
        print("No lines found.")
        return 0

    for line in lines:
        route = " -> ".join(station.name for station in line.stations)
        print(f"{line.id:>6}  {line.name} ({line.color}): {route}")
    return 0


async def cmd_show_line(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Print a line's stations from the up terminus to the down terminus.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    service = LineService(session)
    try:
        line = await service.get_line(args.line_id)
        sections = await service.list_sections(args.line_id)
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"{line.name} ({line.color})")
    for station, section in zip(line.stations, [*sections, None], strict=True):
        print(f"  {station.id:>6}  {station.name}")
        if section is not None:
            print(f"          | {section.distance}")
    return 0


async def cmd_add_section(args: argparse.Namespace, session: AsyncSession) -> int:
    try:
        request = SectionRequest(
            up_station_id=args.up_station_id,
            down_station_id=args.down_station_id,
            distance=args.distance,
        )
        line = await LineService(session).add_section(args.line_id, request)
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"✅ Line {line.id} now runs: {' -> '.join(station.name for station in line.stations)}")
    return 0


async def cmd_remove_station(args: argparse.Namespace, session: AsyncSession) -> int:
    try:
        await LineService(session).delete_section(args.line_id, args.station_id)
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"✅ Removed station {args.station_id} from line {args.line_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per handler."""
    parser = argparse.ArgumentParser(
        description="Subway network management CLI tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  uv run python -m subway.cli create-station "Gangnam"
  uv run python -m subway.cli create-line "Line 2" bg-green-600 1 2 10
  uv run python -m subway.cli add-section 1 2 3 5
  uv run python -m subway.cli show-line 1
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    create_station_parser = subparsers.add_parser("create-station", help="Create a station")
    create_station_parser.add_argument("name", type=str, help="Station name")

    subparsers.add_parser("list-stations", help="List all stations")

    create_line_parser = subparsers.add_parser(
        "create-line",
        help="Create a line with its first section",
        description="Create a line connecting two existing stations.",
    )
    create_line_parser.add_argument("name", type=str, help="Line name")
    create_line_parser.add_argument("color", type=str, help="Line color")
    create_line_parser.add_argument("up_station_id", type=int, help="Up terminus station ID")
    create_line_parser.add_argument("down_station_id", type=int, help="Down terminus station ID")
    create_line_parser.add_argument("distance", type=int, help="Distance between the two stations")

    subparsers.add_parser("list-lines", help="List all lines with their stations")

    show_line_parser = subparsers.add_parser("show-line", help="Show a line's stations and distances")
    show_line_parser.add_argument("line_id", type=int, help="Line ID")

    add_section_parser = subparsers.add_parser(
        "add-section",
        help="Add a section to a line",
        description="Extend a terminus or split an existing section of a line.",
    )
    add_section_parser.add_argument("line_id", type=int, help="Line ID")
    add_section_parser.add_argument("up_station_id", type=int, help="Up station ID")
    add_section_parser.add_argument("down_station_id", type=int, help="Down station ID")
    add_section_parser.add_argument("distance", type=int, help="Distance between the two stations")

    remove_station_parser = subparsers.add_parser("remove-station", help="Remove a station from a line")
    remove_station_parser.add_argument("line_id", type=int, help="Line ID")
    remove_station_parser.add_argument("station_id", type=int, help="Station ID")

    return parser


COMMAND_HANDLERS = {
    "create-station": cmd_create_station,
    "list-stations": cmd_list_stations,
    "create-line": cmd_create_line,
    "list-lines": cmd_list_lines,
    "show-line": cmd_show_line,
    "add-section": cmd_add_section,
    "remove-station": cmd_remove_station,
}


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI tool.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    handler = COMMAND_HANDLERS[args.command]

    async def run_with_session() -> int:
        async with get_session_factory()() as session:
            try:
                return await handler(args, session)
            except Exception as e:
                print(f"❌ Unexpected error: {e}", file=sys.stderr)
                return 1

    return asyncio.run(run_with_session())


if __name__ == "__main__":
    sys.exit(main())
