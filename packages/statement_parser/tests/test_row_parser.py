import pytest

from packages.statement_parser.models import ColumnStructure, TransactionType
from packages.statement_parser.row_parser import (
    SAMPLE_DEPOSITOR,
    SAMPLE_ROWS,
    build_record,
    parse_number,
    parse_records,
    parse_row,
)
from packages.statement_parser.structure import DEFAULT_HEADERS, detect_structure, split_columns

MPAY_LINE = "02/07/2025  MPAYUPITRTR509218316187GOVIND RAMSBINXXX94  15000.00  30790.41"


@pytest.fixture
def deposit_structure():
    return ColumnStructure(headers=("Date", "Particulars", "Deposits", "Balance"))


def test_mpay_deposit_row(deposit_structure):
    records = parse_records(MPAY_LINE, deposit_structure)

    assert len(records) == 1
    record = records[0]
    assert record.date == "2025-07-02"
    assert record.depositor == "GOVIND RAM"
    assert record.deposits == 15000.0
    assert record.withdrawals == 0.0
    assert record.balance == 30790.41
    assert record.type == TransactionType.UPI
    assert record.is_sample is False


def test_parse_row_routes_by_label(deposit_structure):
    fields = parse_row(split_columns(MPAY_LINE), deposit_structure)

    assert fields.date == "2025-07-02"
    assert fields.description.startswith("MPAYUPITRTR")
    assert fields.deposit == 15000.0
    assert fields.amount == 15000.0
    assert fields.balance == 30790.41
    assert fields.is_complete


def test_parsing_starts_after_header_line():
    text = "\n".join(
        [
            "01/07/2025  OPENING ENTRY  -  100.00  100.00",
            "Date Particulars Withdrawals Deposits Balance",
            "03/07/2025  ATM WITHDRAWAL  5,000.00  -  25,790.41",
        ]
    )
    structure = detect_structure(text)
    records = parse_records(text, structure)

    assert structure.header_line_index == 1
    assert len(records) == 1
    assert records[0].date == "2025-07-03"
    assert records[0].withdrawals == 5000.0
    assert records[0].deposits == 0.0
    assert records[0].type == TransactionType.CASH


def test_rows_without_date_or_value_are_skipped(deposit_structure):
    text = "\n".join(
        [
            "No date on this line  100.00  200.00",
            "02/07/2025  NO FIGURES AT ALL  -  -",
            "short",
        ]
    )
    assert parse_records(text, deposit_structure, sample_fallback=False) == []


def test_generic_amount_booked_by_description():
    headers = DEFAULT_HEADERS
    withdrawal = build_record(
        parse_row(["02/07/2025", "ATM CASH WITHDRAWAL", "500.00", "1000.00"], headers),
        headers,
        ["02/07/2025", "ATM CASH WITHDRAWAL", "500.00", "1000.00"],
    )
    deposit = build_record(
        parse_row(["03/07/2025", "SALARY", "800.00", "1800.00"], headers),
        headers,
        ["03/07/2025", "SALARY", "800.00", "1800.00"],
    )

    assert withdrawal.withdrawals == 500.0 and withdrawal.deposits == 0.0
    assert deposit.deposits == 800.0 and deposit.withdrawals == 0.0
    assert deposit.columns == {
        "Date": "03/07/2025",
        "Description": "SALARY",
        "Amount": "800.00",
        "Balance": "1800.00",
    }


def test_missing_description_uses_default():
    headers = ("Date", "Amount", "Balance")
    record = build_record(parse_row(["02/07/2025", "10.00", "20.00"], headers), headers, [])
    assert record.particulars == "Transaction"


@pytest.mark.parametrize(
    "value,expected",
    [("1,500.00 Cr", 1500.0), ("15000", 15000.0), ("-", None), ("", None), ("abc", None)],
)
def test_parse_number(value, expected):
    assert parse_number(value) == expected


def test_sample_fallback_tagged_with_headers():
    structure = detect_structure("")
    records = parse_records("", structure)

    assert len(records) == len(SAMPLE_ROWS) == 5
    assert all(record.is_sample for record in records)
    assert all(record.depositor == SAMPLE_DEPOSITOR for record in records)
    assert all(set(record.columns) == set(structure.headers) for record in records)
    assert records[0].date == "2025-07-01"


def test_sample_fallback_can_be_disabled():
    assert parse_records("", detect_structure(""), sample_fallback=False) == []
