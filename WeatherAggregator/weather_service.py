"""Weather service: provider fallback chain, caching and display dispatch."""
import asyncio
import copy
import itertools
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from config import ApiKeyStore, EngineSettings, ResolutionConfig
from display import WeatherDisplay
from geo import US_NAME_SUFFIXES, country_code_from_location
from nowcast import backfill_nowcast, fetch_nowcast
from nws_provider import NWSProvider
from open_meteo_provider import OpenMeteoProvider
from openweather_provider import OpenWeatherProvider
from pirate_provider import PirateWeatherProvider
from taxonomy import Source
from weather_data import Alert, Nowcast, WeatherData, validate_weather_data
from weather_provider import (
    AllProvidersFailedError,
    FailureKind,
    StageResult,
    WeatherProviderBase,
    WeatherRequest,
)

GENERIC_ERROR_MESSAGE = "Unable to fetch weather data. Please try again later."
NORMALIZATION_ERRORS = (KeyError, TypeError, ValueError, IndexError, AttributeError)


def default_providers() -> Dict[Source, WeatherProviderBase]:
    return {
        Source.NWS: NWSProvider(),
        Source.OPEN_METEO: OpenMeteoProvider(),
        Source.OPENWEATHERMAP: OpenWeatherProvider(),
        Source.PIRATE: PirateWeatherProvider(),
    }


class WeatherService:
    """
    Resolves weather for a coordinate by walking a chain of providers.

    The first provider whose whole pipeline succeeds wins; any failure moves
    straight on to the next provider. Successful results are cached per
    coordinate for ``settings.cache_ttl_seconds`` (0 disables the cache).
    """

    def __init__(
        self,
        providers: Optional[Dict[Source, WeatherProviderBase]] = None,
        settings: Optional[EngineSettings] = None,
        key_store: Optional[ApiKeyStore] = None,
        display: Optional[WeatherDisplay] = None,
        nowcast_fetcher: Callable[..., StageResult] = fetch_nowcast,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize weather service.

        Args:
            providers: Providers by source id (defaults to all four)
            settings: Engine settings
            key_store: API-key store, snapshotted once per resolution
            display: Collaborator that receives results in dispatch mode
            nowcast_fetcher: Callable used to backfill a pending nowcast
            clock: Time source for the result cache
        """
        self.providers = providers if providers is not None else default_providers()
        self.settings = settings or EngineSettings()
        self.key_store = key_store or ApiKeyStore()
        self.display = display
        self.nowcast_fetcher = nowcast_fetcher
        self.clock = clock

        self._cache: Dict[Tuple[float, float], Tuple[float, WeatherData]] = {}
        self._cache_lock = threading.Lock()
        self._generations = itertools.count(1)
        self._latest_generation = 0
        self._generation_lock = threading.Lock()

    # --- provider selection ---------------------------------------------------

    def provider_order(self, country_code: Optional[str] = None, location_name: Optional[str] = None) -> List[Source]:
        """
        Providers to try, in order.

        Regional providers whose home regions include the country come first,
        followed by the configured global order.
        """
        country = (country_code or country_code_from_location(location_name)).strip().lower()
        if country in US_NAME_SUFFIXES:
            country = "us"

        regional = [
            source for source, provider in self.providers.items()
            if provider.metadata.home_regions and country in provider.metadata.home_regions
        ]
        global_order = [source for source in self.settings.global_provider_order if source in self.providers]
        order = regional + [source for source in global_order if source not in regional]
        logging.debug(f"Provider order for country '{country}': {[source.value for source in order]}")
        return order

    # --- generations ----------------------------------------------------------

    def _start_generation(self) -> int:
        with self._generation_lock:
            generation = next(self._generations)
            self._latest_generation = generation
            return generation

    def _is_current(self, generation: int) -> bool:
        with self._generation_lock:
            return generation == self._latest_generation

    # --- cache ----------------------------------------------------------------

    @staticmethod
    def _cache_key(lat: float, lon: float) -> Tuple[float, float]:
        return round(lat, 4), round(lon, 4)

    def _cached(self, lat: float, lon: float) -> Optional[WeatherData]:
        if self.settings.cache_ttl_seconds <= 0:
            return None
        with self._cache_lock:
            entry = self._cache.get(self._cache_key(lat, lon))
        if entry is None:
            return None
        cache_age = self.clock() - entry[0]
        if cache_age < self.settings.cache_ttl_seconds:
            logging.debug(f"Using cached weather data (age: {cache_age:.1f}s, TTL: {self.settings.cache_ttl_seconds}s)")
            return copy.deepcopy(entry[1])
        logging.info(f"Cache expired (age: {cache_age:.1f}s > TTL: {self.settings.cache_ttl_seconds}s), fetching new data")
        return None

    def _store(self, lat: float, lon: float, weather: WeatherData) -> None:
        if self.settings.cache_ttl_seconds <= 0:
            return
        with self._cache_lock:
            self._cache[self._cache_key(lat, lon)] = (self.clock(), copy.deepcopy(weather))

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # --- pipeline -------------------------------------------------------------

    def _run_provider(self, provider: WeatherProviderBase, request: WeatherRequest,
                      config: ResolutionConfig) -> StageResult:
        """Fetch and normalize with one provider; never raises for bad payloads."""
        stage = provider.metadata.id.value
        if provider.metadata.requires_api_key and not config.has_usable_key(provider.metadata.api_key_name):
            logging.info(f"Skipping {provider.metadata.name}: no usable API key")
            return StageResult.failure(FailureKind.CONFIGURATION, f"{provider.metadata.name} API key required", stage)
        try:
            fetched = provider.fetch(request, config)
            if not fetched.ok:
                return fetched
            weather = provider.normalize(fetched.value, request)
            complete = validate_weather_data(weather.to_dict())
        except NORMALIZATION_ERRORS as e:
            logging.error(f"Failed to parse {provider.metadata.name} response: {e}", exc_info=True)
            return StageResult.failure(FailureKind.DATA_SHAPE, f"Failed to parse response: {e}", stage)
        if not complete:
            logging.error(f"{provider.metadata.name} produced an incomplete weather object")
            return StageResult.failure(FailureKind.DATA_SHAPE, "Incomplete weather object", stage)
        return StageResult.success(weather, stage)

    def _backfill(self, weather: WeatherData, request: WeatherRequest, config: ResolutionConfig) -> Nowcast:
        result = self.nowcast_fetcher(request.lat, request.lon, config)
        if result.ok and result.value is not None:
            logging.info(f"Nowcast backfilled: {result.value.description}")
            return result.value
        logging.warning(f"Nowcast backfill failed: {result}")
        return Nowcast.unavailable()

    def _needs_backfill(self, provider: WeatherProviderBase, weather: WeatherData) -> bool:
        if not self.settings.nowcast_backfill:
            return False
        # providers without minute-level data never own the nowcast
        return not provider.metadata.supports_nowcast or weather.nowcast.is_pending

    def _dispatch(self, weather: WeatherData, generation: int) -> None:
        if self.display is None or not self._is_current(generation):
            return
        self.display.set_attribution(weather.source, weather.attribution)
        self.display.display_weather(weather, weather.timezone)
        self.display.hide_loading()

    def resolve_weather(
        self,
        lat: float,
        lon: float,
        country_code: Optional[str] = None,
        location_name: Optional[str] = None,
        return_data: bool = False,
        force_refresh: bool = False,
    ) -> WeatherData:
        """
        Resolve canonical weather for a coordinate.

        In dispatch mode (``return_data=False``) the display collaborator is
        driven as well; results of superseded resolutions are still returned
        but never reach the display.

        Args:
            lat: Latitude (-90 to 90)
            lon: Longitude (-180 to 180)
            country_code: Explicit country code; derived from the location name when omitted
            location_name: Free-text location, used for labels and region choice
            return_data: Only return the result, do not touch the display
            force_refresh: Ignore any cached result

        Returns:
            WeatherData: Canonical weather object

        Raises:
            AllProvidersFailedError: If every provider in the chain failed
        """
        generation = self._start_generation()
        request = WeatherRequest(lat=lat, lon=lon, location_name=location_name, country_code=country_code)
        config = ResolutionConfig(settings=self.settings, api_keys=self.key_store.snapshot())
        dispatch = not return_data and self.display is not None

        cached = None if force_refresh else self._cached(lat, lon)
        if cached is not None:
            if dispatch:
                self._dispatch(cached, generation)
            return cached

        if dispatch and self._is_current(generation):
            self.display.show_loading()

        failures: List[Tuple[Source, StageResult]] = []
        weather: Optional[WeatherData] = None
        winner: Optional[WeatherProviderBase] = None
        for source in self.provider_order(country_code, location_name):
            provider = self.providers[source]
            logging.info(f"Fetching weather from {provider.metadata.name} for {request.coordinate_label}")
            result = self._run_provider(provider, request, config)
            if result.ok:
                weather = result.value
                winner = provider
                logging.info(f"Weather fetch successful from {provider.metadata.name}")
                break
            failures.append((source, result))
            logging.warning(f"{provider.metadata.name} failed ({result}), falling back to next provider")

        if weather is None:
            error = AllProvidersFailedError(failures)
            logging.error(str(error))
            if dispatch and self._is_current(generation):
                self.display.hide_loading()
                self.display.show_error(GENERIC_ERROR_MESSAGE)
            raise error

        if dispatch:
            self._dispatch(weather, generation)

        if self._needs_backfill(winner, weather):
            weather = backfill_nowcast(weather, self._backfill(weather, request, config))
            if dispatch and self._is_current(generation):
                self.display.update_nowcast(weather.nowcast)

        self._store(lat, lon, weather)
        return weather

    async def resolve_weather_async(self, *args, **kwargs) -> WeatherData:
        """Awaitable ``resolve_weather``; the blocking work runs in a worker thread."""
        return await asyncio.to_thread(self.resolve_weather, *args, **kwargs)

    def fetch_area_alerts(self, bounds: Dict[str, float]) -> List[Alert]:
        """Active alerts for a map area (empty when the official provider is unavailable)."""
        provider = self.providers.get(Source.NWS)
        if not isinstance(provider, NWSProvider):
            return []
        config = ResolutionConfig(settings=self.settings, api_keys=self.key_store.snapshot())
        return provider.fetch_area_alerts(bounds, config)
