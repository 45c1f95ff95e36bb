#!/usr/bin/env python3
"""
Ocean layers CLI tool.

Runs the layer processors over a JSON array of rows and prints the result as
JSON. Handy for inspecting a saved query without the map UI.

Usage:
    python -m oceanlayers.cli validate rows.json
    python -m oceanlayers.cli heatmap rows.json --layer temperature
    python -m oceanlayers.cli vectors rows.json --display-parameter "Wind Speed"
    python -m oceanlayers.cli stations rows.json --validate
    python -m oceanlayers.cli colorscale rows.json --field temp --kind temperature
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from oceanlayers.config import settings
from oceanlayers.data import field_presence, validate_coordinates
from oceanlayers.fields import color_scale, generate_heatmap, generate_vector_geometry
from oceanlayers.fields.registry import get_scalar_layer, validate_layer_name
from oceanlayers.records import ensure_rows
from oceanlayers.stations import (
    cluster_stations,
    stations_at_fixed_precision,
    stations_without_grouping,
    validate_stations,
)

logger = logging.getLogger(__name__)


def load_rows(path: str) -> list:
    """Read a JSON array of rows from ``path`` (``-`` for stdin)."""
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def run_validate(rows: list, args: argparse.Namespace) -> dict:
    return {
        "coordinates": validate_coordinates(rows).to_dict(),
        "fields": field_presence(rows),
    }


def run_heatmap(rows: list, args: argparse.Namespace) -> list:
    attribute = args.attribute
    if attribute is None:
        attribute = get_scalar_layer(validate_layer_name(args.layer)).attribute_key
    return generate_heatmap(
        rows,
        attribute,
        grid_resolution=args.resolution,
        depth_filter=args.depth,
        normalize=not args.no_normalize,
    )


def run_vectors(rows: list, args: argparse.Namespace) -> dict:
    return generate_vector_geometry(
        rows,
        display_parameter=args.display_parameter,
        color_by=args.color_by,
        max_vectors=args.max_vectors,
        depth_filter=args.depth,
    )


def run_stations(rows: list, args: argparse.Namespace) -> list:
    if args.no_grouping:
        stations = stations_without_grouping(rows)
    elif args.precision is not None:
        stations = stations_at_fixed_precision(rows, args.precision)
    else:
        stations = cluster_stations(rows)
    if args.validate:
        stations = validate_stations(stations)
    return [s.to_dict(include_members=args.members) for s in stations]


def run_colorscale(rows: list, args: argparse.Namespace) -> dict:
    return color_scale([row.get(args.field) for row in ensure_rows(rows)], args.kind).to_dict()


COMMANDS = {
    "validate": run_validate,
    "heatmap": run_heatmap,
    "vectors": run_vectors,
    "stations": run_stations,
    "colorscale": run_colorscale,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oceanlayers",
        description="Ocean layers CLI tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Check coordinate quality and field coverage:
    python -m oceanlayers.cli validate rows.json

  Salinity heatmap on a 0.05 degree grid at 10 m:
    python -m oceanlayers.cli heatmap rows.json --layer salinity --resolution 0.05 --depth 10

  Wind vectors colored by depth:
    python -m oceanlayers.cli vectors rows.json --display-parameter "Wind Speed" --color-by depth

  Stations, one per exact position:
    python -m oceanlayers.cli stations rows.json --no-grouping
        """
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("rows", help="JSON file holding an array of rows ('-' for stdin)")
        return sub

    add_command("validate", "Coordinate quality and field presence report")

    heatmap_parser = add_command("heatmap", "Heatmap grid for a scalar layer")
    heatmap_parser.add_argument("--layer", default="temperature", help="Registered layer name")
    heatmap_parser.add_argument("--attribute", help="Raw column (overrides --layer)")
    heatmap_parser.add_argument(
        "--resolution",
        type=float,
        default=settings.default_grid_resolution,
        help=f"Grid resolution in degrees (default: {settings.default_grid_resolution})"
    )
    heatmap_parser.add_argument("--depth", type=float, help="Depth filter (±5)")
    heatmap_parser.add_argument("--no-normalize", action="store_true", help="Use raw cell means")

    vectors_parser = add_command("vectors", "Vector line geometry")
    vectors_parser.add_argument("--display-parameter", default="Current Speed")
    vectors_parser.add_argument("--color-by", choices=["speed", "depth"], default="speed")
    vectors_parser.add_argument("--max-vectors", type=int, default=settings.default_max_vectors)
    vectors_parser.add_argument("--depth", type=float, help="Depth filter (±5)")

    stations_parser = add_command("stations", "Clustered stations")
    stations_parser.add_argument("--no-grouping", action="store_true", help="One station per exact position")
    stations_parser.add_argument(
        "--precision", type=int, help="Group at a fixed number of decimals, no water filter"
    )
    stations_parser.add_argument("--validate", action="store_true", help="Attach quality flags")
    stations_parser.add_argument("--members", action="store_true", help="Include member rows")

    colorscale_parser = add_command("colorscale", "Color scale for one column")
    colorscale_parser.add_argument("--field", default="nspeed", help="Column to scale")
    colorscale_parser.add_argument("--kind", default="speed", help="speed, depth or temperature")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format=settings.log_format,
    )

    try:
        rows = load_rows(args.rows)
        logger.debug(f"Running {args.command} on {args.rows}")
        result = COMMANDS[args.command](rows, args)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read rows: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    json.dump(result, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
