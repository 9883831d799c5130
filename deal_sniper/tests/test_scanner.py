from datetime import date
from unittest.mock import Mock

import pytest

from deal_sniper.args import process_args
from deal_sniper.errors import ScanError, SessionError
from deal_sniper.models import Offer, PriceCalendarEntry, PriceRange
from deal_sniper.scanner import best_offer, scan_offers

START = date(2024, 7, 4)
RETURN = date(2024, 7, 11)


def make_offer(price, src="SFO", dst="JFK", start=START, ret=RETURN):
    return Offer(
        start_date=start,
        return_date=ret,
        price=price,
        src_airport_code=src,
        dst_airport_code=dst,
    )


def make_request(origins="SFO", destinations="JFK"):
    return process_args(
        ["07-04-2024", "07-11-2024", "7", origins, destinations]
    )


def make_session(calendar, offers, price_range, url="https://www.aviasales.com/search/SFO0407JFK11071"):
    session = Mock()
    session.get_price_graph.return_value = calendar
    session.get_offers.side_effect = lambda args: (
        (offers, None) if len(args.src_airports) != 1 or args.src_cities else (offers, price_range)
    )
    session.serialize_url.return_value = url
    return session


def test_best_offer_picks_lowest_positive():
    offers = [
        make_offer(0),
        make_offer(-5),
        make_offer(300),
        make_offer(120, src="OAK"),
        make_offer(120, src="SJC"),
    ]
    best = best_offer(offers)
    assert best.price == 120
    assert best.src_airport_code == "OAK"


def test_best_offer_all_zero():
    assert best_offer([make_offer(0), make_offer(0)]) is None
    assert best_offer([make_offer(-5), make_offer(0)]) is None
    assert best_offer([]) is None


def test_deal_printed():
    calendar = [PriceCalendarEntry(START, RETURN, 250)]
    session = make_session(calendar, [make_offer(400), make_offer(250)], PriceRange(low=300, high=500))
    out = []

    deals = scan_offers(session, make_request(), echo=out.append)

    assert deals == 1
    assert out == [
        "2024-07-04 2024-07-11\nprice 250\nhttps://www.aviasales.com/search/SFO0407JFK11071"
    ]
    url_args = session.serialize_url.call_args[0][0]
    assert url_args.src_airports == ("SFO",)
    assert url_args.dst_airports == ("JFK",)
    assert url_args.date == START


def test_price_is_truncated():
    calendar = [PriceCalendarEntry(START, RETURN, 0)]
    session = make_session(calendar, [make_offer(249.99)], PriceRange(low=300))
    out = []
    scan_offers(session, make_request(), echo=out.append)
    assert "price 249\n" in out[0]


@pytest.mark.parametrize("price", [300, 301])
def test_no_deal_when_not_below_low(price):
    calendar = [PriceCalendarEntry(START, RETURN, price)]
    session = make_session(calendar, [make_offer(price)], PriceRange(low=300))
    out = []
    assert scan_offers(session, make_request(), echo=out.append) == 0
    assert out == []
    session.serialize_url.assert_not_called()


def test_all_zero_offers_skipped():
    calendar = [PriceCalendarEntry(START, RETURN, 0)]
    session = make_session(calendar, [make_offer(0)], PriceRange(low=300))
    out = []
    assert scan_offers(session, make_request(), echo=out.append) == 0
    assert session.get_offers.call_count == 1


def test_range_query_is_airport_level():
    calendar = [PriceCalendarEntry(START, RETURN, 100)]
    session = make_session(calendar, [make_offer(100, src="LHR", dst="CDG")], PriceRange(low=50))
    scan_offers(session, make_request("London", "Paris"), echo=lambda s: None)

    first, second = [c[0][0] for c in session.get_offers.call_args_list]
    assert first.src_cities == ("London",)
    assert first.dst_cities == ("Paris",)
    assert second.src_cities == ()
    assert second.src_airports == ("LHR",)
    assert second.dst_airports == ("CDG",)


def test_every_entry_visited():
    calendar = [
        PriceCalendarEntry(START, RETURN, 100),
        PriceCalendarEntry(date(2024, 7, 5), date(2024, 7, 12), 100),
    ]
    session = make_session(calendar, [make_offer(100)], PriceRange(low=200))
    out = []
    assert scan_offers(session, make_request(), echo=out.append) == 2
    assert session.get_offers.call_count == 4


def test_missing_range_is_fatal():
    calendar = [PriceCalendarEntry(START, RETURN, 100)]
    session = make_session(calendar, [make_offer(100)], None)
    with pytest.raises(ScanError, match="missing priceRange"):
        scan_offers(session, make_request(), echo=lambda s: None)


def test_session_error_aborts_remaining_entries():
    calendar = [
        PriceCalendarEntry(START, RETURN, 100),
        PriceCalendarEntry(date(2024, 7, 5), date(2024, 7, 12), 100),
    ]
    session = Mock()
    session.get_price_graph.return_value = calendar
    session.get_offers.side_effect = SessionError("HTTP 500")
    out = []
    with pytest.raises(SessionError):
        scan_offers(session, make_request(), echo=out.append)
    assert out == []
    assert session.get_offers.call_count == 1


def test_calendar_error_propagates():
    session = Mock()
    session.get_price_graph.side_effect = SessionError("boom")
    with pytest.raises(SessionError):
        scan_offers(session, make_request(), echo=lambda s: None)
    session.get_offers.assert_not_called()


def test_one_way_deal_prints_start_date_only():
    request = process_args(
        ["07-04-2024", "07-11-2024", "0", "SFO", "JFK", "default", "default", "OneWay"]
    )
    calendar = [PriceCalendarEntry(START, None, 100)]
    session = make_session(calendar, [make_offer(100, ret=None)], PriceRange(low=200), url="https://x")
    out = []

    assert scan_offers(session, request, echo=out.append) == 1
    assert out == ["2024-07-04\nprice 100\nhttps://x"]
    assert session.serialize_url.call_args[0][0].return_date is None
