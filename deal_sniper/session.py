"""Flight data session used by the offer scanner.

:class:`FlightSession` is the narrow interface the scanner talks to.
:class:`TravelpayoutsSession` implements it on top of the Travelpayouts
flight data API (``/v1/prices/calendar``, ``/aviasales/v3/prices_for_dates``
and ``/v2/prices/month-matrix``).
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from statistics import quantiles
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

import requests

from .config import Settings, get_settings
from .errors import SessionError
from .models import (
    CabinClass,
    Offer,
    Options,
    PriceCalendarEntry,
    PriceRange,
    SearchRequest,
    Stops,
    TripType,
)

logger = logging.getLogger(__name__)

AUTOCOMPLETE_URL = "https://autocomplete.travelpayouts.com/places2"

_MAX_TRANSFERS = {
    Stops.NONSTOP: 0,
    Stops.STOP1: 1,
    Stops.STOP2: 2,
}


@dataclass(frozen=True, slots=True)
class PriceGraphArgs:
    """Price calendar query: every date pair in a range for a fixed trip length."""

    range_start_date: dt.date
    range_end_date: dt.date
    trip_length: int
    src_cities: Tuple[str, ...] = ()
    dst_cities: Tuple[str, ...] = ()
    src_airports: Tuple[str, ...] = ()
    dst_airports: Tuple[str, ...] = ()
    options: Options = field(default_factory=Options)

    @classmethod
    def from_request(cls, request: SearchRequest) -> "PriceGraphArgs":
        return cls(
            range_start_date=request.start_date,
            range_end_date=request.end_date,
            trip_length=request.trip_days,
            src_cities=request.src_cities,
            dst_cities=request.dst_cities,
            src_airports=request.src_airports,
            dst_airports=request.dst_airports,
            options=request.options,
        )


@dataclass(frozen=True, slots=True)
class Args:
    """Offer query for one departure/return date pair."""

    date: dt.date
    return_date: Optional[dt.date]
    src_cities: Tuple[str, ...] = ()
    dst_cities: Tuple[str, ...] = ()
    src_airports: Tuple[str, ...] = ()
    dst_airports: Tuple[str, ...] = ()
    options: Options = field(default_factory=Options)


class FlightSession(Protocol):
    def get_price_graph(self, args: PriceGraphArgs) -> List[PriceCalendarEntry]:
        ...

    def get_offers(self, args: Args) -> Tuple[List[Offer], Optional[PriceRange]]:
        ...

    def serialize_url(self, args: Args) -> str:
        ...


def _months(start: dt.date, end: dt.date) -> Iterator[dt.date]:
    """Yield the first day of every month between *start* and *end*."""
    cur = start.replace(day=1)
    while cur <= end:
        yield cur
        cur = (cur + dt.timedelta(days=32)).replace(day=1)


def _parse_day(raw: Optional[str]) -> Optional[dt.date]:
    if not raw:
        return None
    return dt.date.fromisoformat(raw[:10])


def _stops_ok(transfers: Any, stops: Stops) -> bool:
    limit = _MAX_TRANSFERS.get(stops)
    if limit is None or transfers is None:
        return True
    return int(transfers) <= limit


class TravelpayoutsSession:
    """
    Travelpayouts client implementing :class:`FlightSession`.
    """

    def __init__(
        self,
        token: str,
        marker: str = "",
        base_url: str = "https://api.travelpayouts.com",
        domain: str = "https://www.aviasales.com",
        timeout: float = 15.0,
        http: Optional[requests.Session] = None,
    ) -> None:
        if not token:
            raise SessionError("TP_TOKEN is not configured")
        self.token = token
        self.marker = marker
        self.base_url = base_url.rstrip("/")
        self.domain = domain.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({"Accept-Encoding": "gzip", "X-Access-Token": token})
        self._city_codes: Dict[Tuple[str, str], str] = {}

    @classmethod
    def open(cls, settings: Settings | None = None) -> "TravelpayoutsSession":
        """Create a session from application settings."""
        cfg = settings or get_settings()
        return cls(
            token=cfg.tp_token,
            marker=cfg.tp_marker,
            base_url=cfg.base_url,
            domain=cfg.domain,
            timeout=cfg.timeout_s,
        )

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "TravelpayoutsSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ──────────────────────────────────────────────────────────

    def _get(self, url: str, params: Dict[str, Any]) -> Any:
        try:
            resp = self.http.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SessionError(f"request to {url} failed: {exc}") from exc
        if resp.status_code != 200:
            raise SessionError(f"HTTP {resp.status_code} – {resp.text[:120]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise SessionError(f"invalid JSON from {url}") from exc
        if isinstance(data, dict) and data.get("success") is False:
            raise SessionError(f"API error: {data.get('error')}")
        return data

    def _city_code(self, name: str, lang: str) -> str:
        key = (name.lower(), lang)
        if key not in self._city_codes:
            places = self._get(
                AUTOCOMPLETE_URL,
                {"term": name, "locale": lang, "types[]": "city"},
            )
            if not places or not places[0].get("code"):
                raise SessionError(f"unknown city: {name}")
            self._city_codes[key] = places[0]["code"]
            logger.debug("Resolved city %s -> %s", name, self._city_codes[key])
        return self._city_codes[key]

    def _routes(
        self,
        src_cities: Tuple[str, ...],
        dst_cities: Tuple[str, ...],
        src_airports: Tuple[str, ...],
        dst_airports: Tuple[str, ...],
        options: Options,
    ) -> List[Tuple[str, str]]:
        if src_airports or dst_airports:
            origins = list(src_airports)
            destinations = list(dst_airports)
        else:
            origins = [self._city_code(c, options.lang) for c in src_cities]
            destinations = [self._city_code(c, options.lang) for c in dst_cities]
        return [(o, d) for o in origins for d in destinations]

    # ──────────────────────────────────────────────────────────

    def get_price_graph(self, args: PriceGraphArgs) -> List[PriceCalendarEntry]:
        """Return the cheapest known price for every date pair in the range."""
        opts = args.options
        if opts.cabin_class != CabinClass.ECONOMY:
            logger.warning("Cached prices are economy fares; cabin class %s ignored", opts.cabin_class.name)
        round_trip = opts.trip_type == TripType.ROUND_TRIP
        cheapest: Dict[Tuple[dt.date, Optional[dt.date]], float] = {}

        routes = self._routes(
            args.src_cities, args.dst_cities, args.src_airports, args.dst_airports, opts
        )
        for origin, dest in routes:
            for month in _months(args.range_start_date, args.range_end_date):
                logger.info("Fetching calendar: %s ➔ %s %s", origin, dest, month.strftime("%Y-%m"))
                params: Dict[str, Any] = {
                    "origin": origin,
                    "destination": dest,
                    "depart_date": month.strftime("%Y-%m"),
                    "calendar_type": "departure_date",
                    "currency": opts.currency.lower(),
                    "token": self.token,
                }
                if round_trip:
                    params["length"] = args.trip_length
                data = self._get(f"{self.base_url}/v1/prices/calendar", params)

                for item in (data.get("data") or {}).values():
                    start = _parse_day(item.get("departure_at"))
                    if start is None or not (args.range_start_date <= start <= args.range_end_date):
                        continue
                    if not _stops_ok(item.get("transfers"), opts.stops):
                        continue
                    ret = _parse_day(item.get("return_at")) if round_trip else None
                    if round_trip and ret is None:
                        ret = start + dt.timedelta(days=args.trip_length)
                    price = float(item.get("price") or 0)
                    key = (start, ret)
                    if key not in cheapest or not cheapest[key] or 0 < price < cheapest[key]:
                        cheapest[key] = price

        return [
            PriceCalendarEntry(start_date=start, return_date=ret, price=price)
            for (start, ret), price in sorted(cheapest.items(), key=lambda kv: kv[0][0])
        ]

    def get_offers(self, args: Args) -> Tuple[List[Offer], Optional[PriceRange]]:
        """Return offers for one date pair and, for a single route, its price range."""
        opts = args.options
        round_trip = opts.trip_type == TripType.ROUND_TRIP and args.return_date is not None
        routes = self._routes(
            args.src_cities, args.dst_cities, args.src_airports, args.dst_airports, opts
        )

        offers: List[Offer] = []
        for origin, dest in routes:
            logger.info("Fetching offers: %s ➔ %s %s", origin, dest, args.date)
            params: Dict[str, Any] = {
                "origin": origin,
                "destination": dest,
                "departure_at": args.date.isoformat(),
                "one_way": "false" if round_trip else "true",
                "direct": "true" if opts.stops == Stops.NONSTOP else "false",
                "currency": opts.currency.lower(),
                "sorting": "price",
                "limit": 100,
                "token": self.token,
            }
            if round_trip:
                params["return_at"] = args.return_date.isoformat()
            data = self._get(f"{self.base_url}/aviasales/v3/prices_for_dates", params)
            for item in data.get("data") or []:
                offer = self._to_offer(item, opts.stops)
                if offer:
                    offers.append(offer)

        price_range = None
        if len(routes) == 1:
            price_range = self._price_range(routes[0], args)
        return offers, price_range

    def _to_offer(self, item: Dict[str, Any], stops: Stops) -> Offer | None:
        """Map a ``prices_for_dates`` record onto an :class:`Offer`."""
        transfers = max(int(item.get("transfers") or 0), int(item.get("return_transfers") or 0))
        if not _stops_ok(transfers, stops):
            return None
        start = _parse_day(item.get("departure_at"))
        if start is None:
            return None
        return Offer(
            start_date=start,
            return_date=_parse_day(item.get("return_at")),
            price=float(item.get("price") or 0),
            src_airport_code=item.get("origin_airport") or item.get("origin", ""),
            dst_airport_code=item.get("destination_airport") or item.get("destination", ""),
        )

    def _price_range(self, route: Tuple[str, str], args: Args) -> Optional[PriceRange]:
        """Typical price range: lower and upper quartile of the month's prices."""
        origin, dest = route
        opts = args.options
        params: Dict[str, Any] = {
            "origin": origin,
            "destination": dest,
            "month": args.date.replace(day=1).isoformat(),
            "currency": opts.currency.lower(),
            "show_to_affiliates": "true",
            "token": self.token,
        }
        if opts.trip_type == TripType.ROUND_TRIP and args.return_date is not None:
            weeks = max(1, round((args.return_date - args.date).days / 7))
            params["trip_duration"] = weeks
        else:
            params["one_way"] = "true"
        data = self._get(f"{self.base_url}/v2/prices/month-matrix", params)

        prices = [float(r["value"]) for r in data.get("data") or [] if r.get("value")]
        if len(prices) < 2:
            logger.debug("Not enough history for %s ➔ %s (%d prices)", origin, dest, len(prices))
            return None
        low, _, high = quantiles(prices, n=4)
        return PriceRange(low=low, high=high)

    def serialize_url(self, args: Args) -> str:
        """Build an aviasales search link for a single airport pair."""
        if len(args.src_airports) != 1 or len(args.dst_airports) != 1:
            raise SessionError("deep link needs exactly one source and destination airport")
        url = (
            f"{self.domain}/search/"
            f"{args.src_airports[0]}{args.date.strftime('%d%m')}"
            f"{args.dst_airports[0]}"
            f"{args.return_date.strftime('%d%m') if args.return_date else ''}"
            f"{args.options.adults}"
        )
        if self.marker:
            url += f"?marker={self.marker}"
        return url


__all__ = [
    "Args",
    "PriceGraphArgs",
    "FlightSession",
    "TravelpayoutsSession",
    "SessionError",
]
