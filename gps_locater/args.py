"""Command-line argument parsing and configuration setup."""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import config
from .config import RoutePlanner, ThemeColor
from .models import coordinates_valid


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command-line arguments and return parsed args."""
    parser = argparse.ArgumentParser(
        prog="gps-locater",
        description="Record, label and manage your GPS locations",
    )
    parser.add_argument(
        "--data-dir",
        default=str(config.data_dir),
        help=f"Directory for saved locations and preferences (default: {config.data_dir})",
    )
    parser.add_argument("--lat", type=float, help="Use this latitude instead of detecting the position")
    parser.add_argument("--lon", type=float, help="Use this longitude instead of detecting the position")
    parser.add_argument(
        "--allow-location",
        action="store_true",
        help="Grant location access without prompting",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=config.location_timeout,
        help=f"Seconds to wait for a position fix (default: {config.location_timeout:g})",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging and raw error messages")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("locate", help="Show the current location")

    save = sub.add_parser("save", help="Save the current location")
    save.add_argument("name", nargs="?", default="", help="Name (default: the street name)")
    save.add_argument("-d", "--description", default="", help="Description")
    save.add_argument("--favorite", action="store_true", help="Mark as favorite")

    lst = sub.add_parser("list", help="List saved locations")
    lst.add_argument("--favorites", action="store_true", help="Only favorites")

    show = sub.add_parser("show", help="Show a saved location")
    show.add_argument("id", help="Location id or unique prefix")
    show.add_argument("--distance", action="store_true", help="Include distance from the current location")

    edit = sub.add_parser("edit", help="Edit a saved location")
    edit.add_argument("id", help="Location id or unique prefix")
    edit.add_argument("-d", "--description", help="New description")
    fav = edit.add_mutually_exclusive_group()
    fav.add_argument("--favorite", dest="favorite", action="store_true", default=None)
    fav.add_argument("--no-favorite", dest="favorite", action="store_false")

    favorite = sub.add_parser("favorite", help="Toggle favorite")
    favorite.add_argument("id", help="Location id or unique prefix")

    delete = sub.add_parser("delete", help="Delete a saved location")
    delete.add_argument("id", help="Location id or unique prefix")

    delete_all = sub.add_parser("delete-all", help="Delete all saved locations")
    delete_all.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    export = sub.add_parser("export", help="Export saved locations to CSV")
    export.add_argument("path", help="CSV file to write")

    imp = sub.add_parser("import", help="Import saved locations from CSV")
    imp.add_argument("path", help="CSV file to read")

    weather = sub.add_parser("weather", help="Current weather")
    weather.add_argument("id", nargs="?", help="Saved location (default: current location)")

    directions = sub.add_parser("directions", help="Open directions to a saved location")
    directions.add_argument("id", help="Location id or unique prefix")
    directions.add_argument(
        "--planner",
        choices=[p.value for p in RoutePlanner],
        help="Route planner (default: the saved preference)",
    )
    directions.add_argument("--print", dest="print_only", action="store_true", help="Only print the link")

    share = sub.add_parser("share", help="Print share text for a saved location")
    share.add_argument("id", help="Location id or unique prefix")

    theme = sub.add_parser("theme", help="Show or change the theme")
    theme.add_argument("name", nargs="?", choices=[t.value for t in ThemeColor])
    mode = theme.add_mutually_exclusive_group()
    mode.add_argument("--dark", dest="dark", action="store_true", default=None)
    mode.add_argument("--light", dest="dark", action="store_false")

    planner = sub.add_parser("planner", help="Show or change the route planner")
    planner.add_argument("name", nargs="?", choices=[p.value for p in RoutePlanner])

    sub.add_parser("dump", help="Debug dump of stored data")

    return parser.parse_args(argv)


def setup_config(argv: Optional[Sequence[str]] = None):
    """Parse arguments and apply them to config module."""
    args = parse_args(argv)

    # Validate: coordinates come in pairs
    if (args.lat is None) != (args.lon is None):
        print("Error: --lat and --lon must be given together.")
        sys.exit(1)

    if args.lat is not None and not coordinates_valid(args.lat, args.lon):
        print("Error: --lat must be within -90..90 and --lon within -180..180.")
        sys.exit(1)

    if args.timeout <= 0:
        print("Error: --timeout must be positive.")
        sys.exit(1)

    config.data_dir = Path(args.data_dir).expanduser()
    config.fixed_latitude = args.lat
    config.fixed_longitude = args.lon
    config.allow_location = args.allow_location
    config.location_timeout = args.timeout
    if args.debug:
        config.debug_mode = True
    return args
