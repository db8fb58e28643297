import io
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from packages.statement_parser.errors import (
    TextRecoveryFailed,
    WorkbookDecryptionFailed,
    WorkbookPasswordRequired,
)
from packages.statement_parser.models import TransactionType
from packages.statement_parser.spreadsheet import (
    _OLE2_MAGIC,
    choose_sheet,
    find_column_index,
    map_columns,
    parse_grid,
    read_workbook_grid,
)

# OLE2 magic prefix to simulate encrypted file content
_FAKE_ENCRYPTED = _OLE2_MAGIC + b"fake_encrypted_payload"

CSV_STATEMENT = (
    b"Date,Particulars,Depositor,Amount\n"
    b"02/07/2025,NEFT SALARY,JOHN DOE,25000\n"
    b"03/07/2025,ATM WITHDRAWAL,,-500\n"
)


@pytest.fixture
def bank_grid():
    return [
        ["Bank statement", "", "", "", ""],
        ["Date", "Description", "Debit", "Credit", "Balance"],
        ["01/07/2025", "ATM CASH", "500", "", "9500"],
        ["02/07/2025", "UPI/GOVIND", "", "1,200.00", "10700"],
        ["", "", "", "", ""],
        ["Total", "", "", "", ""],
    ]


@pytest.fixture
def xlsx_bytes():
    buffer = io.BytesIO()
    summary = pd.DataFrame([["Account", "1234"]])
    transactions = pd.DataFrame(
        [
            ["Date", "Particulars", "Withdrawals", "Deposits", "Balance"],
            ["02/07/2025", "MPAYUPITRTR509218316187GOVIND RAMSBINXXX94", None, 15000, 30790.41],
            ["03/07/2025", "ATM WITHDRAWAL", 790.41, None, 30000],
        ]
    )
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        summary.to_excel(writer, sheet_name="Summary", index=False, header=False)
        transactions.to_excel(writer, sheet_name="Transactions", index=False, header=False)
    return buffer.getvalue()


def test_parse_grid_debit_credit_columns(bank_grid):
    records = parse_grid(bank_grid)

    assert len(records) == 2
    atm, upi = records
    assert atm.date == "2025-07-01"
    assert atm.withdrawals == 500.0
    assert atm.balance == 9500.0
    assert atm.type == TransactionType.CASH
    assert upi.deposits == 1200.0
    assert upi.type == TransactionType.UPI
    assert upi.columns["description"] == "UPI/GOVIND"


def test_single_amount_column_uses_sign():
    rows = [
        ["Date", "Particulars", "Amount", "Mode"],
        ["02/07/2025", "Rent", "-15000", "neft"],
        ["03/07/2025", "Gift", "100", "cheque"],
    ]
    rent, gift = parse_grid(rows)

    assert rent.withdrawals == 15000.0 and rent.deposits == 0.0
    assert rent.type == TransactionType.NEFT
    assert gift.deposits == 100.0
    assert gift.type == TransactionType.OTHER


def test_withdrawal_hint_in_particulars():
    rows = [["Date", "Particulars", "Amount"], ["02/07/2025", "Card payment", "250"]]
    (record,) = parse_grid(rows)
    assert record.withdrawals == 250.0


def test_rows_without_amount_are_skipped():
    rows = [["Date", "Particulars", "Amount"], ["02/07/2025", "Note only", ""]]
    assert parse_grid(rows) == []


def test_grid_without_header_has_no_columns_to_map():
    assert parse_grid([["02/07/2025", "something", "100"]]) == []


def test_missing_particulars_and_depositor():
    rows = [["Date", "Amount"], ["02/07/2025", "100"]]
    (record,) = parse_grid(rows)

    assert record.particulars == "Transaction Row 2"
    assert record.depositor == "Transaction Row"


def test_column_aliases():
    headers = ["txn date", "narration", "customer name", "debit", "credit", "closing balance"]
    column_map = map_columns(headers)

    assert column_map["date"] == 0
    assert column_map["particulars"] == 1
    assert column_map["depositor"] == 2
    assert column_map["withdrawals"] == 3
    assert column_map["deposits"] == 4
    assert column_map["balance"] == 5
    assert column_map["type"] == -1


def test_lone_amount_header_is_not_split():
    column_map = map_columns(["date", "amount"])
    assert column_map["amount"] == 1
    assert column_map["deposits"] == column_map["withdrawals"] == -1


def test_description_header_with_single_amount_column():
    rows = [
        ["Date", "Description", "Amount", "Balance"],
        ["02/07/2025", "Salary July", "25000", "30000"],
        ["03/07/2025", "509218 NEFT SALARY", "1500", "31500"],
    ]
    salary, neft = parse_grid(rows)

    assert salary.deposits == 25000.0 and salary.withdrawals == 0.0
    assert salary.balance == 30000.0
    assert neft.deposits == 1500.0 and neft.withdrawals == 0.0
    assert neft.particulars == "509218 NEFT SALARY"


def test_short_aliases_match_whole_words_only():
    column_map = map_columns(["date", "description", "amount", "balance"])
    assert column_map["particulars"] == 1
    assert column_map["amount"] == 2
    assert column_map["deposits"] == column_map["withdrawals"] == -1

    column_map = map_columns(["date", "particulars", "amount (dr)", "amount (cr)", "total"])
    assert column_map["withdrawals"] == 2
    assert column_map["deposits"] == 3
    assert column_map["depositor"] == -1


def test_find_column_index_skips_empty_headers():
    assert find_column_index(["", "date"], ["date"]) == 1


def test_choose_sheet():
    assert choose_sheet(["Summary", "Transactions"]) == "Transactions"
    assert choose_sheet(["Sheet1", "Sheet2"]) == "Sheet1"


def test_read_csv_statement():
    rows = read_workbook_grid(CSV_STATEMENT, filename="statement.csv")

    assert rows[0] == ["Date", "Particulars", "Depositor", "Amount"]
    assert rows[2] == ["03/07/2025", "ATM WITHDRAWAL", "", "-500"]


def test_read_tsv_splits_on_tabs():
    tsv = CSV_STATEMENT.replace(b",", b"\t")

    rows = read_workbook_grid(tsv, filename="statement.tsv")

    assert rows[1] == ["02/07/2025", "NEFT SALARY", "JOHN DOE", "25000"]


def test_read_csv_falls_back_to_cp1252():
    content = b"Date,Particulars,Amount\n02/07/2025,Caf\xe9 \x80 refund,100\n"

    rows = read_workbook_grid(content, filename="statement.csv")

    assert rows[1] == ["02/07/2025", "Café € refund", "100"]


def test_csv_round_trip_to_records():
    salary, atm = parse_grid(read_workbook_grid(CSV_STATEMENT, filename="statement.csv"))

    assert salary.depositor == "JOHN DOE"
    assert salary.deposits == 25000.0
    assert salary.type == TransactionType.NEFT
    assert atm.withdrawals == 500.0


def test_read_xlsx_picks_transaction_sheet(xlsx_bytes):
    rows = read_workbook_grid(xlsx_bytes, filename="statement.xlsx")

    assert rows[0] == ["Date", "Particulars", "Withdrawals", "Deposits", "Balance"]
    records = parse_grid(rows)
    assert [r.depositor for r in records][0] == "GOVIND RAM"
    assert records[0].deposits == 15000.0
    assert records[1].withdrawals == 790.41


def test_unreadable_workbook():
    with pytest.raises(TextRecoveryFailed):
        read_workbook_grid(b"PK\x03\x04not really a zip", filename="broken.xlsx")


def test_encrypted_workbook_requires_password():
    with pytest.raises(WorkbookPasswordRequired):
        read_workbook_grid(_FAKE_ENCRYPTED, filename="locked.xlsx")


@patch("packages.statement_parser.spreadsheet.msoffcrypto")
@patch("packages.statement_parser.spreadsheet.pd.read_excel")
def test_encrypted_workbook_is_decrypted(mock_read_excel, mock_msoffcrypto):
    mock_read_excel.return_value = {
        "Sheet1": pd.DataFrame([["Date", "Amount"], ["02/07/2025", 100.0]])
    }
    mock_file = MagicMock()
    mock_msoffcrypto.OfficeFile.return_value = mock_file

    rows = read_workbook_grid(_FAKE_ENCRYPTED, filename="locked.xlsx", password="secret")

    mock_msoffcrypto.OfficeFile.assert_called()
    mock_file.load_key.assert_called_with(password="secret")
    mock_file.decrypt.assert_called()
    assert rows == [["Date", "Amount"], ["02/07/2025", "100"]]


@patch("packages.statement_parser.spreadsheet.msoffcrypto")
def test_wrong_password(mock_msoffcrypto):
    mock_file = MagicMock()
    mock_file.load_key.side_effect = Exception("The file could not be decrypted with this password")
    mock_msoffcrypto.OfficeFile.return_value = mock_file

    with pytest.raises(WorkbookDecryptionFailed, match="Invalid password"):
        read_workbook_grid(_FAKE_ENCRYPTED, password="wrong")
