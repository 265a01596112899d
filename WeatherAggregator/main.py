"""Command-line front end: resolve weather for a location once or on a refresh loop."""
import argparse
import dataclasses
import logging
import os
import signal
import sys
import time
from typing import Optional, Tuple

from dotenv import load_dotenv

from config import DEFAULT_LAT, DEFAULT_LON, load_settings
from display import ConsoleDisplay
from weather_provider import WeatherProviderError
from weather_service import WeatherService

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weather-aggregator.log")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Multi-provider weather aggregator")
    parser.add_argument("--lat", type=float, default=None)
    parser.add_argument("--lon", type=float, default=None)
    parser.add_argument("--location", default=None, help='Free-text location, e.g. "Austin, TX, USA"')
    parser.add_argument("--country", default=None, help="Country code used to pick the first provider")
    parser.add_argument("--refresh", type=float, default=0.0, help="Seconds between refreshes (0 = run once)")
    parser.add_argument("--cache-ttl", type=int, default=None)
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    parser.add_argument("--no-nowcast", action="store_true")
    parser.add_argument("--json", action="store_true", help="Print the full canonical object as JSON")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def load_location(args: argparse.Namespace) -> Tuple[float, float, Optional[str], Optional[str]]:
    load_dotenv()
    lat = args.lat if args.lat is not None else os.getenv("WEATHER_LAT")
    lon = args.lon if args.lon is not None else os.getenv("WEATHER_LON")
    location = args.location or os.getenv("WEATHER_LOCATION")
    country = args.country or os.getenv("WEATHER_COUNTRY")

    if lat is None and lon is None:
        lat, lon = DEFAULT_LAT, DEFAULT_LON
        location = location or "New York, NY, USA"
    if lat is None or lon is None:
        raise SystemExit("Both latitude and longitude are required (--lat/--lon or WEATHER_LAT/WEATHER_LON)")

    try:
        lat_val = float(lat)
        lon_val = float(lon)
    except ValueError as exc:
        raise SystemExit(f"Invalid coordinates: {exc}") from exc
    if not -90 <= lat_val <= 90 or not -180 <= lon_val <= 180:
        raise SystemExit(f"Coordinates out of range: {lat_val}, {lon_val}")

    logging.info("Location loaded: lat=%s lon=%s location=%s country=%s", lat_val, lon_val, location, country)
    return lat_val, lon_val, location, country


def build_weather_service(args: argparse.Namespace) -> WeatherService:
    settings, key_store = load_settings()
    overrides = {}
    if args.cache_ttl is not None:
        overrides["cache_ttl_seconds"] = args.cache_ttl
    if args.timeout is not None:
        overrides["http_timeout"] = args.timeout
    if args.no_nowcast:
        overrides["nowcast_enabled"] = False
        overrides["nowcast_backfill"] = False
    settings = dataclasses.replace(settings, **overrides)

    service = WeatherService(
        settings=settings,
        key_store=key_store,
        display=ConsoleDisplay(as_json=args.json),
    )
    logging.info("Weather service ready (cache ttl=%ss)", settings.cache_ttl_seconds)
    return service


def weather_loop(service: WeatherService, location: Tuple[float, float, Optional[str], Optional[str]],
                 args: argparse.Namespace) -> int:
    lat, lon, location_name, country = location
    exit_code = 0
    frame = 0
    while True:
        frame += 1
        logging.info("Refresh %s: fetching weather", frame)
        try:
            service.resolve_weather(lat, lon, country_code=country, location_name=location_name)
            exit_code = 0
        except WeatherProviderError as err:
            logging.error("Weather fetch failed: %s", err)
            exit_code = 1

        if args.refresh <= 0:
            return exit_code
        time.sleep(max(args.refresh, 1.0))


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    location = load_location(args)
    service = build_weather_service(args)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        return weather_loop(service, location, args)
    except KeyboardInterrupt:
        logging.info("Stopping")
        return 0


if __name__ == "__main__":
    sys.exit(main())
