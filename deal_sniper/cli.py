from __future__ import annotations

import logging
import sys
import time
from typing import Optional, Tuple

import click
from pydantic import ValidationError

from .args import process_args
from .config import get_settings
from .errors import DealSniperError
from .scanner import scan_offers
from .session import TravelpayoutsSession

logger = logging.getLogger(__name__)

USAGE = (
    "START_DATE END_DATE DURATION ORIGINS DESTINATIONS "
    "[TRAVELERS] [CLASS] [TRIP_TYPE] [STOPS]"
)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=logging.getLevelName(level),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@click.command(
    help=(
        "Print date pairs whose cheapest offer undercuts the typical price range.\n\n"
        f"ARGS: {USAGE}\n\nDates use mm-dd-yyyy; optional slots accept 'default'."
    )
)
@click.argument("args", nargs=-1)
@click.option("--currency", default=None, help="ISO currency code, overrides SNIPER_CURRENCY")
@click.option("--lang", default=None, help="Language code, overrides SNIPER_LANG")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr")
def cli(args: Tuple[str, ...], currency: Optional[str], lang: Optional[str], verbose: bool) -> None:
    try:
        cfg = get_settings()
    except ValidationError as exc:
        click.echo(f"error: invalid configuration: {exc}", err=True)
        sys.exit(1)

    _setup_logging("INFO" if verbose else cfg.log_level)

    try:
        request = process_args(
            args,
            currency=currency or cfg.currency,
            lang=lang or cfg.lang,
        )

        t = time.perf_counter()
        with TravelpayoutsSession.open(cfg) as session:
            logger.info("Session opened in %.3fs", time.perf_counter() - t)
            deals = scan_offers(session, request)
        logger.info("Found %d deals", deals)
    except DealSniperError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
