from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

import click

from .errors import ScanError
from .models import Offer, SearchRequest
from .session import Args, FlightSession, PriceGraphArgs

logger = logging.getLogger(__name__)


def best_offer(offers: Iterable[Offer]) -> Optional[Offer]:
    """Return the first offer with the lowest strictly positive price."""
    best: Optional[Offer] = None
    for offer in offers:
        if offer.price > 0 and (best is None or offer.price < best.price):
            best = offer
    return best


def format_deal(offer: Offer, url: str) -> str:
    dates = str(offer.start_date)
    if offer.return_date is not None:
        dates += f" {offer.return_date}"
    return f"{dates}\nprice {int(offer.price)}\n{url}"


def scan_offers(
    session: FlightSession,
    request: SearchRequest,
    echo: Callable[[str], None] = click.echo,
) -> int:
    """Print every calendar date pair whose best offer beats the typical low.

    Any session error propagates and aborts the scan. Returns the number of
    deals printed.
    """
    graph_args = PriceGraphArgs.from_request(request)
    options = graph_args.options

    calendar = session.get_price_graph(graph_args)
    logger.info("Price calendar has %d entries", len(calendar))

    deals = 0
    for entry in calendar:
        offers, _ = session.get_offers(
            Args(
                date=entry.start_date,
                return_date=entry.return_date,
                src_cities=graph_args.src_cities,
                dst_cities=graph_args.dst_cities,
                src_airports=graph_args.src_airports,
                dst_airports=graph_args.dst_airports,
                options=options,
            )
        )

        best = best_offer(offers)
        if best is None:
            logger.debug("No priced offers for %s %s", entry.start_date, entry.return_date)
            continue

        route_args = Args(
            date=best.start_date,
            return_date=best.return_date,
            src_airports=(best.src_airport_code,),
            dst_airports=(best.dst_airport_code,),
            options=options,
        )
        _, price_range = session.get_offers(route_args)
        if price_range is None:
            raise ScanError("missing priceRange")

        logger.debug(
            "Best %s ➔ %s %s %s price=%.0f low=%.0f",
            best.src_airport_code,
            best.dst_airport_code,
            best.start_date,
            best.return_date,
            best.price,
            price_range.low,
        )
        if best.price < price_range.low:
            url = session.serialize_url(route_args)
            echo(format_deal(best, url))
            deals += 1

    return deals


__all__ = ["best_offer", "format_deal", "scan_offers"]
