"""Turn positional command line strings into a :class:`SearchRequest`.

Argument slots::

    startDate endDate durationDays origins destinations \
        travelers cabinClass tripType stops

``origins`` and ``destinations`` are ``-`` separated lists of either IATA
airport codes (``SFO-OAK``) or city names (``London-Paris``). The last four
slots are optional and accept the literal ``default``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Sequence

from .errors import ArgumentError
from .models import CabinClass, Options, SearchRequest, Stops, TripType

logger = logging.getLogger(__name__)

DATE_FORMAT = "%m-%d-%Y"
LIST_SEPARATOR = "-"
DEFAULT = "default"
MIN_ARGS = 5

START_DATE_ARG = 0
END_DATE_ARG = 1
DURATION_ARG = 2
START_ARG = 3
END_ARG = 4
TRAVELER_ARG = 5
CLASS_ARG = 6
TRIP_TYPE_ARG = 7
STOP_ARG = 8
TOTAL_ARGS = 9

_CABIN_CODES = {
    int(CabinClass.PREMIUM_ECONOMY): CabinClass.PREMIUM_ECONOMY,
    int(CabinClass.BUSINESS): CabinClass.BUSINESS,
    int(CabinClass.FIRST): CabinClass.FIRST,
}

_STOP_CODES = {
    int(Stops.NONSTOP): Stops.NONSTOP,
    int(Stops.STOP1): Stops.STOP1,
    int(Stops.STOP2): Stops.STOP2,
}


def looks_like_iata(token: str) -> bool:
    """Return ``True`` for three character, all-uppercase tokens such as ``SFO``."""
    return len(token) == 3 and token.upper() == token


def detect_airport_codes(origins: Sequence[str], destinations: Sequence[str]) -> bool:
    """Decide whether the lists hold airport codes rather than city names.

    Origins are scanned first, then destinations. Once a code-like token has
    been seen every following token must look like a code as well.
    """
    airports = False
    for token in [*origins, *destinations]:
        if looks_like_iata(token):
            airports = True
        elif airports:
            raise ArgumentError("must be all airports in IATA formatting, ie SFO")
    return airports


def _parse_date(raw: str) -> date:
    return datetime.strptime(raw.strip(), DATE_FORMAT).date()


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ArgumentError(f"{name} must be an integer, got {raw!r}") from None


def _split(raw: str) -> List[str]:
    return [tok.strip() for tok in raw.split(LIST_SEPARATOR) if tok.strip()]


def process_args(
    argv: Sequence[str],
    *,
    currency: str = "USD",
    lang: str = "en",
) -> SearchRequest:
    """Validate *argv* (program name excluded) and build a search request."""
    if len(argv) < MIN_ARGS:
        raise ArgumentError("missing minimum number of args")

    args = list(argv) + [DEFAULT] * (TOTAL_ARGS - len(argv))

    currency = currency.strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ArgumentError(f"currency must be a 3-letter ISO code, got {currency!r}")

    try:
        start_date = _parse_date(args[START_DATE_ARG])
        end_date = _parse_date(args[END_DATE_ARG])
    except ValueError:
        raise ArgumentError("unable to process date fields | mm-dd-yyyy") from None

    duration = _parse_int(args[DURATION_ARG], "trip duration")
    if duration < 0:
        raise ArgumentError("trip duration cannot be negative")

    origins = _split(args[START_ARG])
    destinations = _split(args[END_ARG])
    if not origins or not destinations:
        raise ArgumentError("need a start and destination city")

    airports = detect_airport_codes(origins, destinations)

    adults = 1
    if args[TRAVELER_ARG] != DEFAULT:
        adults = _parse_int(args[TRAVELER_ARG], "traveler count")
        if adults < 1:
            raise ArgumentError("traveler count must be at least 1")

    cabin_class = CabinClass.ECONOMY
    if args[CLASS_ARG] != DEFAULT:
        code = _parse_int(args[CLASS_ARG], "cabin class")
        cabin_class = _CABIN_CODES.get(code, CabinClass.ECONOMY)

    trip_type = TripType.ROUND_TRIP
    if args[TRIP_TYPE_ARG] == "OneWay":
        trip_type = TripType.ONE_WAY

    stops = Stops.ANY
    if args[STOP_ARG] != DEFAULT:
        code = _parse_int(args[STOP_ARG], "stop preference")
        stops = _STOP_CODES.get(code, Stops.ANY)

    request = SearchRequest(
        start_date=start_date,
        end_date=end_date,
        trip_days=duration,
        origins=tuple(origins),
        destinations=tuple(destinations),
        using_airport_codes=airports,
        options=Options(
            adults=adults,
            currency=currency,
            stops=stops,
            cabin_class=cabin_class,
            trip_type=trip_type,
            lang=lang.lower(),
        ),
    )
    logger.debug("Parsed search request: %s", request)
    return request


__all__ = ["process_args", "detect_airport_codes", "looks_like_iata", "DATE_FORMAT"]
