"""Data models used throughout the project."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum
from typing import Optional, Tuple


class CabinClass(IntEnum):
    ECONOMY = 1
    PREMIUM_ECONOMY = 2
    BUSINESS = 3
    FIRST = 4


class TripType(IntEnum):
    ROUND_TRIP = 1
    ONE_WAY = 2


class Stops(IntEnum):
    ANY = 0
    NONSTOP = 1
    STOP1 = 2
    STOP2 = 3


@dataclass(frozen=True, slots=True)
class Options:
    adults: int = 1
    currency: str = "USD"
    stops: Stops = Stops.ANY
    cabin_class: CabinClass = CabinClass.ECONOMY
    trip_type: TripType = TripType.ROUND_TRIP
    lang: str = "en"


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Validated search parameters built once from the command line."""

    start_date: date
    end_date: date
    trip_days: int
    origins: Tuple[str, ...]
    destinations: Tuple[str, ...]
    using_airport_codes: bool
    options: Options = field(default_factory=Options)

    @property
    def src_airports(self) -> Tuple[str, ...]:
        return self.origins if self.using_airport_codes else ()

    @property
    def dst_airports(self) -> Tuple[str, ...]:
        return self.destinations if self.using_airport_codes else ()

    @property
    def src_cities(self) -> Tuple[str, ...]:
        return () if self.using_airport_codes else self.origins

    @property
    def dst_cities(self) -> Tuple[str, ...]:
        return () if self.using_airport_codes else self.destinations


@dataclass(frozen=True, slots=True)
class PriceCalendarEntry:
    start_date: date
    return_date: Optional[date]
    price: float


@dataclass(frozen=True, slots=True)
class Offer:
    start_date: date
    return_date: Optional[date]
    price: float
    src_airport_code: str
    dst_airport_code: str


@dataclass(frozen=True, slots=True)
class PriceRange:
    low: float
    high: Optional[float] = None


__all__ = [
    "CabinClass",
    "TripType",
    "Stops",
    "Options",
    "SearchRequest",
    "PriceCalendarEntry",
    "Offer",
    "PriceRange",
]
