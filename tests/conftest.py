from __future__ import annotations

from pathlib import Path

import pytest

FIDELITY_EXPORT = "\ufeff" + "\n".join(
    [
        "",
        "",
        "Run Date,Action,Symbol,Description,Type,Price ($),Quantity,Commission ($),Fees ($),"
        "Accrued Interest ($),Amount ($),Cash Balance ($),Settlement Date",
        "01/02/2024,ELECTRONIC FUNDS TRANSFER DEPOSIT (Cash),,No Description,Cash,,0,,,,10000.00,10000.00,",
        "01/15/2024,YOU BOUGHT APPLE INC (AAPL) (Cash),AAPL,APPLE INC,Cash,185.50,10,0.00,0.05,,-1855.05,8144.95,01/17/2024",
        "02/01/2024,YOU SOLD MICROSOFT CORP (MSFT) (Cash),MSFT,MICROSOFT CORP,Cash,400.00,-5,0.00,0.02,,1999.98,10144.93,02/05/2024",
        "02/15/2024,DIVIDEND RECEIVED APPLE INC (AAPL) (Cash),AAPL,APPLE INC,Cash,,0,,,,24.00,10168.93,",
        "",
        '"The data and information in this spreadsheet is provided to you solely for your use, and is not for distribution."',
        '"Brokerage services are provided by Fidelity Brokerage Services LLC (FBS), 900 Salem Street, Smithfield, RI 02917."',
        "",
    ]
)

MERRILL_TRANSACTIONS_EXPORT = "\r\n".join(
    [
        '"Exported on: 02/02/2026 12:07 AM ET"',
        '"Account: CMA-Edge 123-45678"',
        '"Date range: 01/01/2024 - 12/31/2024"',
        '"Transactions: All"',
        '""',
        '"Trade Date ","Settlement Date ","Description","Type","Symbol/ CUSIP ","Quantity","Price","Amount"," "',
        '"","","","","","","","",""',
        '"","","","","","","","",""',
        '"01/10/2024","01/12/2024","Purchase VANGUARD S&P 500 ETF","Trade","VOO","10","$430.25","-$4,302.50",""',
        '"02/14/2024","02/16/2024","Sale APPLE INC","Trade","AAPL 037833100","-5","$185.00","$925.00",""',
        '"03/01/2024","03/01/2024","Dividend VOO","Income","VOO","","","$15.20",""',
        '"03/05/2024","03/05/2024","Deposit Funds Transfer","Cash","","","","$5,000.00",""',
        '"03/10/2024","03/10/2024","Journal Entry","Other","","","","$1.00",""',
        '"Total activity from 01/01/2024 to 12/31/2024","","","","","","","$1,638.70",""',
        "",
    ]
)

MERRILL_HOLDINGS_EXPORT = "\n".join(
    [
        '"COB Date","Security Description","Symbol","Account Nickname","Quantity","Price ($)",'
        '"Value ($)","Unrealized Gain/Loss ($)","Unrealized Gain/Loss (%)"',
        '"02/01/2026","APPLE INC","AAPL","CMA","50","$190.00","$9,500.00","$1,500.00","18.75%"',
        '"02/01/2026","VANGUARD S&P 500 ETF","VOO","CMA","20","$450.00","$9,000.00","($200.00)","-2.17%"',
        '"02/01/2026","ML BANK DEPOSIT PROGRAM","TSTXX","CMA","3,250.75","$1.00","$3,250.75","--","--"',
        '"02/01/2026","UNPRICED POSITION","","CMA","0","$0.00","$0.00","",""',
    ]
)

TRADE_LOG_EXPORT = "\n".join(
    [
        "Symbol,Side,Entry Price,Quantity,EntryDate,ExitPrice,ExitDate,Fees,Notes",
        "AAPL,LONG,150.00,10,2024-01-15,160.00,2024-02-01,2.00,swing",
        "TSLA,S,250,4,01/20/2024,230,01/25/2024,,",
        "MSFT,L,400,5,2024-03-01,,,1.5,open position",
        "NVDA,LONG,500,2,2024-03-05,520,,0,",
    ]
)

POSITIONS_PAGE = "\n".join(
    [
        "Positions",
        "Account: Individual ...1234",
        "",
        "As of Feb-01-2026 4:00 PM ET",
        "",
        "",
        "Account total",
        "Total value $22,430.50",
        "",
        "",
        "Symbol,Description,Quantity,Avg cost,Cost basis,Price,Value,Day change,Total gain/loss",
        "Balances",
        'AAPL,"APPLE INC",50,$160.00,$160.00,$190.00,"$9,500.00",+$20.00,"+$1,500.00 +18.75%"',
        'VOO,"VANGUARD S&P 500 ETF",20,$460.00,$460.00,$450.00,"$9,000.00",-$10.00,"-$200.00 -2.17%"',
        'Money accounts,,,,,,"$3,250.75",,',
        "Cash balance,,,,,,$679.75,,",
        "Pending activity,,,,,,$0.00,,",
        'OLD,"DELISTED CO",0,$1.00,$1.00,$0.00,$0.00,,',
        'Total,,,,,,"$22,430.50",,',
    ]
)


@pytest.fixture
def fidelity_export() -> str:
    return FIDELITY_EXPORT


@pytest.fixture
def merrill_transactions_export() -> str:
    return MERRILL_TRANSACTIONS_EXPORT


@pytest.fixture
def merrill_holdings_export() -> str:
    return MERRILL_HOLDINGS_EXPORT


@pytest.fixture
def trade_log_export() -> str:
    return TRADE_LOG_EXPORT


@pytest.fixture
def positions_page() -> str:
    return POSITIONS_PAGE


@pytest.fixture
def export_files(tmp_path: Path) -> dict[str, Path]:
    transactions = tmp_path / "transactions.csv"
    transactions.write_text(MERRILL_TRANSACTIONS_EXPORT, encoding="utf-8")
    holdings = tmp_path / "holdings.csv"
    holdings.write_text(POSITIONS_PAGE, encoding="utf-8")
    return {"transactions": transactions, "holdings": holdings}


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_ENV",
        "LOG_LEVEL",
        "PORTFOLIO_IMPORT_OUTPUT",
        "PORTFOLIO_IMPORT_PREVIEW_ROWS",
        "PORTFOLIO_IMPORT_DELIMITER",
    ):
        monkeypatch.delenv(name, raising=False)
