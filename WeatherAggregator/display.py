"""Display collaborators that receive resolved weather."""
import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Optional, TextIO

from taxonomy import Source
from weather_data import Attribution, Nowcast, WeatherData


class WeatherDisplay(ABC):
    """Anything that can show weather: a terminal, a web UI, an LED matrix."""

    @abstractmethod
    def show_loading(self) -> None:
        pass

    @abstractmethod
    def hide_loading(self) -> None:
        pass

    @abstractmethod
    def set_attribution(self, source: Source, attribution: Optional[Attribution]) -> None:
        pass

    @abstractmethod
    def display_weather(self, weather: WeatherData, location_label: str) -> None:
        pass

    @abstractmethod
    def update_nowcast(self, nowcast: Nowcast) -> None:
        pass

    @abstractmethod
    def show_error(self, message: str) -> None:
        pass


class ConsoleDisplay(WeatherDisplay):
    """
    Prints weather to a text stream.

    Args:
        stream: Where to write (defaults to stdout)
        as_json: Dump the full serialized object instead of a summary
    """

    def __init__(self, stream: Optional[TextIO] = None, as_json: bool = False):
        self.stream = stream or sys.stdout
        self.as_json = as_json
        self.attribution: Optional[Attribution] = None

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()

    def show_loading(self) -> None:
        logging.debug("Loading weather...")

    def hide_loading(self) -> None:
        logging.debug("Loading finished")

    def set_attribution(self, source: Source, attribution: Optional[Attribution]) -> None:
        self.attribution = attribution
        logging.info(f"Data source: {source.value}")

    def display_weather(self, weather: WeatherData, location_label: str) -> None:
        if self.as_json:
            self._write(json.dumps(weather.to_dict(), indent=2))
            return

        current = weather.currently
        self._write(f"{location_label} ({weather.source.value})")
        self._write(
            f"  {round(current.temperature)}°F  {current.summary}  "
            f"wind {current.wind_speed:.0f} mph  humidity {round(current.humidity * 100)}%"
        )
        if weather.station_info.display and weather.station_info.station_name:
            self._write(f"  Station: {weather.station_info.station_name}")
        for hour in weather.hourly[:6]:
            self._write(f"  {hour.formatted_time:>5}  {round(hour.temperature)}°F  {hour.summary}")
        for day in weather.daily:
            self._write(
                f"  {round(day.temperature_high)}/{round(day.temperature_low)}°F  "
                f"{day.precip_chance:.0f}%  {day.summary}"
            )
        for alert in weather.alerts:
            self._write(f"  ! [{alert.severity.value}] {alert.title}")
        if self.attribution:
            self._write(f"  Data: {self.attribution.name} ({self.attribution.url})")

    def update_nowcast(self, nowcast: Nowcast) -> None:
        if self.as_json:
            self._write(json.dumps({"nowcast": nowcast.to_dict()}, indent=2))
        else:
            self._write(f"  Nowcast: {nowcast.description}")

    def show_error(self, message: str) -> None:
        self._write(f"Error: {message}")
