from packages.statement_parser.dates import today_iso
from packages.statement_parser.line_scanner import (
    is_transaction_line,
    scan_statement_lines,
    scan_windows,
)
from packages.statement_parser.models import UNKNOWN_CUSTOMER, TransactionType


def test_rail_tagged_line_becomes_deposit():
    records = scan_statement_lines("02/07/2025 UPI CREDIT FROM RAVI 1,500.00\nrandom noise")

    assert len(records) == 1
    record = records[0]
    assert record.date == "2025-07-02"
    assert record.deposits == 1500.0
    assert record.withdrawals == 0.0
    assert record.type == TransactionType.UPI


def test_withdrawal_hint_books_withdrawal():
    records = scan_statement_lines("05/07/2025 NEFT PAYMENT TO LANDLORD 12,000.00")

    assert records[0].withdrawals == 12000.0
    assert records[0].deposits == 0.0
    assert records[0].type == TransactionType.NEFT


def test_leading_serial_is_dropped_from_particulars():
    records = scan_statement_lines("1  05/07/2025 NEFT SALARY 25,000.00")
    assert records[0].particulars == "05/07/2025 NEFT SALARY 25,000.00"


def test_date_taken_from_nearby_line():
    records = scan_statement_lines("05/07/2025 statement\nUPI CREDIT 250.00")

    assert len(records) == 1
    assert records[0].date == "2025-07-05"
    assert records[0].date_defaulted is False


def test_missing_date_defaults_to_today():
    records = scan_statement_lines("UPI CREDIT 250.00")

    assert records[0].date == today_iso()
    assert records[0].date_defaulted is True


def test_implausible_amount_rejected():
    assert scan_statement_lines("UPI 99,999,999.00") == []


def test_is_transaction_line():
    assert is_transaction_line("MPAY something")
    assert is_transaction_line("02/07/2025 cheque 450.00")
    assert not is_transaction_line("Statement period")


def test_scan_windows_ignores_date_digits():
    records = scan_windows("on 02/07/2025 paid 450.00 today")

    assert len(records) == 1
    assert records[0].date == "2025-07-02"
    assert records[0].deposits == 450.0
    assert records[0].depositor == UNKNOWN_CUSTOMER
    assert records[0].type == TransactionType.OTHER


def test_scan_windows_without_dates():
    assert scan_windows("no dates here 450.00") == []


def test_leading_date_is_not_mistaken_for_serial():
    records = scan_statement_lines("02/07/2025 UPI CREDIT 750.00")
    assert records[0].particulars == "02/07/2025 UPI CREDIT 750.00"


def test_date_digits_are_not_the_amount():
    (record,) = scan_statement_lines("02/07/2025 UPI CHARGE 5.00")

    assert record.withdrawals == 5.0
    assert record.deposits == 0.0
    assert record.date == "2025-07-02"


def test_period_line_is_not_a_transaction():
    period = "Statement period 01/07/2025 to 31/07/2025"

    assert scan_statement_lines(period) == []
    assert scan_windows(period) == []
