"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, Tuple, TypeVar

from geo import coordinate_label
from taxonomy import Source
from weather_data import Attribution, WeatherData

T = TypeVar("T")


class FailureKind(str, Enum):
    NETWORK = "network"
    DATA_SHAPE = "data_shape"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """
    Outcome of one pipeline stage.

    Stages return these instead of raising so the orchestrator can decide
    whether to fall back. ``value`` is only meaningful when ``ok`` is True.
    """
    ok: bool
    value: Optional[T] = None
    failure_kind: Optional[FailureKind] = None
    message: str = ""
    stage: str = ""

    @classmethod
    def success(cls, value: T, stage: str = "") -> "StageResult[T]":
        return cls(ok=True, value=value, stage=stage)

    @classmethod
    def failure(cls, kind: FailureKind, message: str, stage: str = "") -> "StageResult[T]":
        return cls(ok=False, failure_kind=kind, message=message, stage=stage)

    def __str__(self) -> str:
        if self.ok:
            return f"{self.stage or 'stage'}: ok"
        return f"{self.stage or 'stage'}: {self.failure_kind.value} - {self.message}"


@dataclass(frozen=True)
class WeatherRequest:
    """Coordinates plus the optional free-text hints used for labels and region choice."""
    lat: float
    lon: float
    location_name: Optional[str] = None
    country_code: Optional[str] = None

    @property
    def coordinate_label(self) -> str:
        return coordinate_label(self.lat, self.lon)


@dataclass(frozen=True)
class ProviderMetadata:
    id: Source
    name: str
    attribution: Attribution
    requires_api_key: bool = False
    api_key_name: Optional[str] = None
    supports_nowcast: bool = False
    home_regions: Tuple[str, ...] = field(default_factory=tuple)


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    metadata: ProviderMetadata

    @abstractmethod
    def fetch(self, request: WeatherRequest, config: Any) -> StageResult:
        """
        Run every network stage of the provider's pipeline.

        Args:
            request: Coordinates and location hints
            config: ResolutionConfig snapshot for this resolution

        Returns:
            StageResult: Raw payload on success, tagged failure otherwise
        """

    @abstractmethod
    def normalize(self, payload: Any, request: WeatherRequest) -> WeatherData:
        """
        Convert a raw payload into the canonical weather object.

        Raises:
            KeyError, TypeError, ValueError, IndexError, AttributeError:
                When the payload does not have the expected shape
        """


class WeatherProviderError(Exception):
    """Exception raised when a weather provider fails."""
    pass


class AllProvidersFailedError(WeatherProviderError):
    """Every provider in the fallback chain failed."""

    def __init__(self, failures: List[Tuple[Source, StageResult]]):
        self.failures = failures
        summary = "; ".join(f"{source.value} ({result})" for source, result in failures)
        super().__init__(f"All weather providers failed: {summary or 'no providers configured'}")
