import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from . import config
from . import args as args_module
from . import csv_io, display, maps
from .app import GPSLocaterApp
from .config import RoutePlanner, ThemeColor
from .errors import (
    CSVImportError,
    LocationError,
    StoreError,
    ValidationError,
    user_friendly_message,
)

logger = logging.getLogger("gps_locater")


def _configure_logging(data_dir: Path, debug: bool) -> None:
    formatter = logging.Formatter("[%(asctime)s] %(levelname)s in %(module)s: %(message)s")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    try:
        log_dir = data_dir / config.LOG_DIR
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(log_dir / "gps_locater.log", maxBytes=1024 * 1024, backupCount=3)
    except OSError as e:
        logger.warning("File logging disabled: %s", e)
        return
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


async def _acquire(app: GPSLocaterApp):
    entry = await app.coordinator.acquire_current_location()
    if app.coordinator.geocoding_error is not None:
        print(f"Warning: {user_friendly_message(app.coordinator.geocoding_error)}")
    return entry


async def cmd_locate(app: GPSLocaterApp, args) -> int:
    entry = await _acquire(app)
    display.print_entry(entry)
    return 0


async def cmd_save(app: GPSLocaterApp, args) -> int:
    entry = await _acquire(app)
    # Default name is the street, like the new-location form
    name = args.name or app.coordinator.current_street or ""
    location = app.store.create_saved_location(name, args.description, entry, is_favorite=args.favorite)
    app.store.save()
    print(f"Saved '{location.name}' ({str(location.id)[:8]}) at {entry.label}")
    return 0


async def cmd_list(app: GPSLocaterApp, args) -> int:
    display.print_location_list(app.store.with_entries(favorites_only=args.favorites))
    return 0


async def cmd_show(app: GPSLocaterApp, args) -> int:
    location = app.store.resolve(args.id)
    current = None
    if args.distance:
        await _acquire(app)
        current = app.coordinator.current_location
    display.print_location_detail(location, app.store.entry_for(location), current)
    return 0


async def cmd_edit(app: GPSLocaterApp, args) -> int:
    location = app.store.resolve(args.id)
    app.store.update(location.id, description=args.description, is_favorite=args.favorite)
    app.store.save()
    print(f"Updated '{location.name}'")
    return 0


async def cmd_favorite(app: GPSLocaterApp, args) -> int:
    location = app.store.toggle_favorite(app.store.resolve(args.id).id)
    app.store.save()
    state = "added to" if location.is_favorite else "removed from"
    print(f"'{location.name}' {state} favorites")
    return 0


async def cmd_delete(app: GPSLocaterApp, args) -> int:
    location = app.store.delete(app.store.resolve(args.id).id)
    app.store.save()
    print(f"Deleted '{location.name}'")
    return 0


async def cmd_delete_all(app: GPSLocaterApp, args) -> int:
    if not args.yes:
        response = input(f"Delete all {len(app.store.locations)} saved locations? (y/n): ").strip().lower()
        if response != "y":
            print("Cancelled")
            return 1
    count = app.store.delete_all()
    app.store.save()
    print(f"Deleted {count} locations")
    return 0


async def cmd_export(app: GPSLocaterApp, args) -> int:
    if not app.store.locations:
        print("No saved locations to export")
        return 1
    count = csv_io.export_to_file(app.store, Path(args.path))
    print(f"Exported {count} locations to {args.path}")
    return 0


async def cmd_import(app: GPSLocaterApp, args) -> int:
    report = csv_io.import_from_file(app.store, Path(args.path), show_progress=True)
    print(report.message)
    return 1 if report.errors else 0


async def cmd_weather(app: GPSLocaterApp, args) -> int:
    if args.id:
        location = app.store.resolve(args.id)
        entry = app.store.entry_for(location)
        if entry is None:
            raise StoreError(f"'{location.name}' has no location data")
    else:
        entry = await _acquire(app)
    weather = await app.weather.fetch_weather(entry.latitude, entry.longitude)
    if weather is None:
        print(user_friendly_message(app.weather.error) if app.weather.error else "Weather is unavailable")
        return 1
    print(entry.label)
    display.print_weather(weather)
    return 0


async def cmd_directions(app: GPSLocaterApp, args) -> int:
    location = app.store.resolve(args.id)
    entry = app.store.entry_for(location)
    if entry is None:
        raise StoreError(f"'{location.name}' has no location data")
    planner = RoutePlanner(args.planner) if args.planner else app.route_planner
    name = location.display_name(entry)
    if args.print_only:
        print(maps.directions_url(entry, name, planner))
        print(maps.directions_url(entry, name, planner, web=True))
        return 0
    if not maps.open_directions(entry, name, planner):
        print("Failed to open directions")
        return 1
    return 0


async def cmd_share(app: GPSLocaterApp, args) -> int:
    location = app.store.resolve(args.id)
    entry = app.store.entry_for(location)
    if entry is None:
        raise StoreError(f"'{location.name}' has no location data")
    print(maps.share_text(location, entry))
    return 0


async def cmd_theme(app: GPSLocaterApp, args) -> int:
    if args.name:
        app.theme.set_theme(ThemeColor(args.name))
    if args.dark is not None:
        app.theme.set_dark_mode(args.dark)
    mode = "dark" if app.theme.is_dark_mode else "light"
    print(f"Theme: {app.theme.current.display_name} ({mode} mode)")
    return 0


async def cmd_planner(app: GPSLocaterApp, args) -> int:
    if args.name:
        app.set_route_planner(RoutePlanner(args.name))
    print(f"Route planner: {app.route_planner.display_name}")
    return 0


async def cmd_dump(app: GPSLocaterApp, args) -> int:
    display.dump_saved_locations(app.store.with_entries())
    display.dump_preferences(app.preferences.items())
    return 0


COMMANDS = {
    "locate": cmd_locate,
    "save": cmd_save,
    "list": cmd_list,
    "show": cmd_show,
    "edit": cmd_edit,
    "favorite": cmd_favorite,
    "delete": cmd_delete,
    "delete-all": cmd_delete_all,
    "export": cmd_export,
    "import": cmd_import,
    "weather": cmd_weather,
    "directions": cmd_directions,
    "share": cmd_share,
    "theme": cmd_theme,
    "planner": cmd_planner,
    "dump": cmd_dump,
}


async def main(argv=None) -> int:
    args = args_module.setup_config(argv)
    _configure_logging(config.data_dir, config.debug_mode)

    try:
        app = GPSLocaterApp(config.data_dir)
        app.start()
        return await COMMANDS[args.command](app, args)
    except (LocationError, CSVImportError, StoreError, ValidationError) as e:
        logger.debug("Command %s failed", args.command, exc_info=e)
        print(f"Error: {user_friendly_message(e)}")
        return 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
