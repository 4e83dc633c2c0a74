"""
Column layouts of the tracking tabs.

TripCart tabs (events and unique users share the layout):
    A Date,
    B Sessions / Users, C Listing Page,
    D Send Inquiry TC, E Inquiry Start, F % Start (E/D),
    G Inquiry Submit, H % Submit (G/E),
    I Completed Inquiry (CSV), J Conversion Rate (I/G),
    K Book Now TC, L BN Clicks, M % Click BN (L/K),
    N Proceed to Payment, O % BN (N/L),
    P Confirmed IB (CSV), Q Conversion Rate (P/L)

AB-Test daily tab (SI = send-inquiry bucket, RQ = request-a-quote bucket):
    B SI price calculated, C SI inquiry start, D (C/B),
    E RQ price calculated, F RQ inquiry start, G (F/E),
    H SI price calculated p1+p2, I SI book-now click, J (I/H),
    K SI inquiry start p1, L (K/H),
    M RQ price calculated p1+p2, N RQ book-now click, O (N/M),
    P RQ inquiry start p1, Q (P/N)
"""
from typing import Optional

from funnel_sync.sheets.schema import COUNT_FORMAT, RatioFormula, SheetSchema

TRIPCART_EVENTS_SHEET = "TripCart-Events"
TRIPCART_USERS_SHEET = "TripCart-Users"
AB_TEST_DAILY_SHEET = "AB-Test-SI-RQ-Daily"
AB_TEST_SUMMARY_SHEET = "AB-Test-SI-RQ-Summary"

TRIPCART_COLUMNS = {
    "sessions": "B",
    "listing_views": "C",
    "send_inquiry_cart": "D",
    "inquiry_start": "E",
    "inquiry_submit": "G",
    "completed_inquiry": "I",
    "book_now_cart": "K",
    "book_now_click": "L",
    "proceed_to_payment": "N",
    "confirmed_ib": "P",
}


def _tripcart_ratios(fallback: str) -> dict:
    return {
        "F": RatioFormula("E", "D", fallback),  # % Start Inquiry
        "H": RatioFormula("G", "E", fallback),  # % Submit
        "J": RatioFormula("I", "G", fallback),  # Conversion Rate
        "M": RatioFormula("L", "K", fallback),  # % Click BN
        "O": RatioFormula("N", "L", fallback),  # % BN
        "Q": RatioFormula("P", "L", fallback),  # Conversion Rate
    }


def _tripcart_header(first: str) -> tuple:
    return (
        "Date",
        first, "Listing Page",
        "Send Inquiry TC", "Inquiry Start", "% Start Inquiry",
        "Inquiry Submit", "% Submit",
        "Completed Inquiry", "Conversion Rate",
        "Book Now TC", "BN Clicks", "% Click BN",
        "Proceed to Payment", "% BN",
        "Confirmed IB", "Conversion Rate",
    )


def tripcart_events_schema(name: Optional[str] = None) -> SheetSchema:
    return SheetSchema(
        name=name or TRIPCART_EVENTS_SHEET,
        columns=dict(TRIPCART_COLUMNS),
        ratios=_tripcart_ratios('""'),
        header=_tripcart_header("Sessions"),
        create_if_missing=True,
    )


def tripcart_users_schema(name: Optional[str] = None) -> SheetSchema:
    columns = dict(TRIPCART_COLUMNS)
    columns["total_users"] = columns.pop("sessions")
    return SheetSchema(
        name=name or TRIPCART_USERS_SHEET,
        columns=columns,
        ratios=_tripcart_ratios("0"),
        header=_tripcart_header("Users"),
        create_if_missing=True,
        count_format=COUNT_FORMAT,
    )


def ab_test_daily_schema(name: Optional[str] = None) -> SheetSchema:
    return SheetSchema(
        name=name or AB_TEST_DAILY_SHEET,
        columns={
            "si_price_calculated": "B",
            "si_inquiry_start": "C",
            "rq_price_calculated": "E",
            "rq_inquiry_start": "F",
            "si_price_calculated_p1": "H",
            "si_book_now_click": "I",
            "si_inquiry_start_p1": "K",
            "rq_price_calculated_p1": "M",
            "rq_book_now_click": "N",
            "rq_inquiry_start_p1": "P",
        },
        ratios={
            "D": RatioFormula("C", "B"),
            "G": RatioFormula("F", "E"),
            "J": RatioFormula("I", "H"),
            "L": RatioFormula("K", "H"),
            "O": RatioFormula("N", "M"),
            "Q": RatioFormula("P", "N"),
        },
    )
