"""
Command-line interface for geo-intel-offline.

Provides commands for building the data files and querying them.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from . import geohash
from .confidence import confidence_label
from .distance import METHODS, Location, calculate_distance
from .errors import GeoIntelError
from .indexer import build_geohash_index
from .resolver import Resolver, ResolverConfig
from .serialize import load_data_store, result_to_dict, write_data_files


# Default data directory (relative to package)
DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"

DATA_DIR_ENV = "GEO_INTEL_DATA_DIR"


def default_data_dir() -> Path:
    """Data directory from the environment, else the package-relative one."""
    env = os.environ.get(DATA_DIR_ENV)
    return Path(env) if env else DEFAULT_DATA_DIR


def _add_data_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help=f"Directory containing the data files (default: ${DATA_DIR_ENV} or data/)",
    )


def _add_json(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="geo-intel-offline",
        description="Offline coordinate to country resolution",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build data files from a Natural Earth shapefile",
    )
    build_parser.add_argument(
        "--source-dir",
        type=Path,
        default=None,
        help="Directory containing the Natural Earth shapefile (default: data/)",
    )
    build_parser.add_argument(
        "--shapefile",
        type=str,
        default="ne_10m_admin_0_countries.zip",
        help="Shapefile or zip name (default: ne_10m_admin_0_countries.zip)",
    )
    build_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output directory for the data files (default: data directory)",
    )
    build_parser.add_argument(
        "--max-precision",
        type=int,
        default=5,
        help="Geohash precision of boundary cells (default: 5)",
    )
    build_parser.add_argument(
        "--min-precision",
        type=int,
        default=1,
        help="Shortest geohash key emitted (default: 1)",
    )
    build_parser.add_argument(
        "--simplify",
        type=float,
        default=None,
        help="Simplification tolerance in degrees (default: none)",
    )
    build_parser.add_argument(
        "--no-compress",
        action="store_true",
        help="Write plain JSON instead of gzip",
    )

    # Resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve coordinates to a country",
    )
    resolve_parser.add_argument("lat", type=float, help="Latitude in degrees")
    resolve_parser.add_argument("lon", type=float, help="Longitude in degrees")
    resolve_parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Skip the exhaustive scan when no indexed candidate matches",
    )
    _add_data_dir(resolve_parser)
    _add_json(resolve_parser)

    # Reverse command
    reverse_parser = subparsers.add_parser(
        "reverse",
        help="Resolve a country name or ISO code to coordinates",
    )
    reverse_parser.add_argument("identifier", help="Country name, ISO2 or ISO3 code")
    _add_data_dir(reverse_parser)
    _add_json(reverse_parser)

    # Distance command
    distance_parser = subparsers.add_parser(
        "distance",
        help="Distance between two locations ('lat,lon' or country)",
    )
    distance_parser.add_argument("origin", help="'lat,lon' or country identifier")
    distance_parser.add_argument("destination", help="'lat,lon' or country identifier")
    distance_parser.add_argument(
        "--method",
        choices=METHODS,
        default="auto",
        help="Distance method (default: auto)",
    )
    distance_parser.add_argument(
        "--unit",
        choices=["km", "mile"],
        default=None,
        help="Output unit (default: by country preference, else km)",
    )
    _add_data_dir(distance_parser)
    _add_json(distance_parser)

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show geohash cell size for a given precision",
    )
    stats_parser.add_argument(
        "-p", "--precision",
        type=int,
        default=geohash.GEOHASH_PRECISION,
        help=f"Geohash precision (default: {geohash.GEOHASH_PRECISION})",
    )

    return parser


def parse_location(text: str) -> Location:
    """Parse 'lat,lon' into a tuple; anything else is a country identifier."""
    parts = text.split(",")
    if len(parts) == 2:
        try:
            return float(parts[0]), float(parts[1])
        except ValueError:
            pass
    return text


def _load_resolver(args: argparse.Namespace, config: Optional[ResolverConfig] = None) -> Resolver:
    data_dir = args.data_dir or default_data_dir()
    return Resolver(load_data_store(data_dir), config)


def cmd_build(args: argparse.Namespace) -> int:
    """Handle the build command."""
    from .duckdb_source import open_natural_earth

    source_dir = args.source_dir or DEFAULT_DATA_DIR
    output_dir = args.output or default_data_dir()

    print(f"Loading shapefile from: {source_dir / args.shapefile}")
    try:
        source = open_natural_earth(source_dir, args.shapefile, args.simplify)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1

    with source:
        polygons = source.polygons()
        metadata = source.metadata()
        print(f"Loaded {source.get_country_count()} countries")

    print(f"Building geohash index to precision {args.max_precision}...")
    index, stats = build_geohash_index(
        polygons,
        max_precision=args.max_precision,
        min_precision=args.min_precision,
    )

    print(f"\nBuild statistics:")
    print(f"  Countries indexed: {stats.countries_indexed}")
    print(f"  Cells visited: {stats.cells_visited}")
    print(f"  Cells split: {stats.cells_split}")
    print(f"  Interior cells: {stats.interior_cells}")
    print(f"  Boundary cells: {stats.boundary_cells}")
    print(f"  Max precision reached: {stats.max_precision_reached}")
    print(f"  Index keys: {len(index)}")

    paths = write_data_files(
        output_dir, index, polygons, metadata, compress=not args.no_compress
    )
    for path in paths:
        print(f"Wrote {path.stat().st_size} bytes to {path}")

    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle the resolve command."""
    config = ResolverConfig(exhaustive_fallback=not args.no_fallback)
    result = _load_resolver(args, config).resolve_coordinates(args.lat, args.lon)

    if args.json:
        print(json.dumps(result_to_dict(result)))
    elif not result.is_match:
        print(f"No country found at ({args.lat}, {args.lon})")
    else:
        print(f"{result.name} ({result.iso2}/{result.iso3})")
        print(f"  Continent: {result.continent}")
        if result.timezone:
            print(f"  Timezone: {result.timezone}")
        print(f"  Confidence: {result.confidence:.2f} ({confidence_label(result.confidence)})")

    return 0


def cmd_reverse(args: argparse.Namespace) -> int:
    """Handle the reverse command."""
    result = _load_resolver(args).resolve_country(args.identifier)

    if args.json:
        print(json.dumps(result_to_dict(result)))
    else:
        print(f"{result.name} ({result.iso2}/{result.iso3})")
        print(f"  Coordinates: {result.latitude:.4f}, {result.longitude:.4f}")
        print(f"  Continent: {result.continent}")

    return 0


def cmd_distance(args: argparse.Namespace) -> int:
    """Handle the distance command."""
    origin = parse_location(args.origin)
    destination = parse_location(args.destination)

    resolver = None
    if isinstance(origin, str) or isinstance(destination, str):
        resolver = _load_resolver(args)

    result = calculate_distance(
        origin, destination, resolver=resolver, method=args.method, unit=args.unit
    )

    if args.json:
        print(json.dumps({
            "distance": result.distance,
            "unit": result.unit,
            "method": result.method,
            "from": list(result.from_coordinates),
            "to": list(result.to_coordinates),
        }))
    else:
        print(f"{result.distance:.2f} {result.unit} ({result.method})")

    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle the stats command."""
    p = args.precision
    lat_deg, lon_deg = geohash.cell_dimensions(p)

    print(f"Geohash statistics for precision {p}:")
    print(f"  Total cells: {32 ** p:,}")
    print(f"  Cell height: {lat_deg:.6g} degrees")
    print(f"  Cell width: {lon_deg:.6g} degrees")
    print(f"  Approx. size at equator: {lat_deg * 111.32:.3f} km x {lon_deg * 111.32:.3f} km")

    return 0


COMMANDS = {
    "build": cmd_build,
    "resolve": cmd_resolve,
    "reverse": cmd_reverse,
    "distance": cmd_distance,
    "stats": cmd_stats,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return COMMANDS[args.command](args)
    except (GeoIntelError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
