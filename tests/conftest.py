"""
Pytest configuration and fixtures for subscription finder tests.
"""

import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

sys.path.insert(0, str(PROJECT_ROOT / "python"))

from subscription_finder.merchant_normalizer import normalize  # noqa: E402
from subscription_finder.models import Direction, Transaction  # noqa: E402


@pytest.fixture
def config_dir() -> Path:
    """Return the packaged config directory path."""
    return PROJECT_ROOT / "python" / "subscription_finder" / "config"


@pytest.fixture
def make_transaction():
    """Return a factory building transactions with a normalized merchant."""

    def _make(
        merchant: str,
        amount,
        txn_date: date,
        direction: Direction = Direction.DEBIT,
        **kwargs
    ) -> Transaction:
        return Transaction(
            date=txn_date,
            description=kwargs.pop("description", merchant),
            merchant=merchant,
            normalized_merchant=kwargs.pop("normalized_merchant", normalize(merchant)),
            amount=Decimal(str(amount)),
            direction=direction,
            **kwargs
        )

    return _make


@pytest.fixture
def wells_fargo_text() -> str:
    """Return extracted text of a Wells Fargo checking statement."""
    return """Wells Fargo Everyday Checking
Account number: 1234567890
Statement period activity summary
July 1, 2023 - July 31, 2023
Transaction history
Date Check Number Description Deposits/Additions Withdrawals/Subtractions Ending daily balance
7/3 Recurring Payment authorized on 07/01 Netflix.Com Netflix.Com CA S463182047538210 Card 7765 15.49 1,234.51
7/5 Purchase authorized on 07/04 Starbucks Store 123 Seattle WA P000000123456789 Card 7765 6.75
7/10 Payroll ACH Direct Dep 2,500.00 3,727.76
7/15 Recurring Payment authorized on 07/14 Spotify USA New York NY S383196000000000 Card 7765 10.99
Totals $2,500.00 $33.23
Monthly service fee summary
"""


@pytest.fixture
def bank_of_america_text() -> str:
    """Return extracted text of a Bank of America checking statement."""
    return """Bank of America
Your Adv Plus Banking
for June 1, 2023 to June 30, 2023
Account number: 4321 0987 6543
Deposits and other credits
Date Description Amount
06/02/23 PAYROLL DES:PAYROLL ID:123 INDN:DOE JOHN CO ID:999 PPD 2,000.00
Total deposits and other credits $2,000.00
Withdrawals and other debits
Date Description Amount
06/05/23 CHECKCARD 0604 NETFLIX.COM 866-579-7172 CA 24492153156000000000000 -15.49
06/12/23 Zelle Transfer to JANE SMITH Conf# abc123 -50.00
06/20/23 COMCAST DES:CABLE ID:8778 INDN:JOHN DOE CO ID:0000 PPD -89.99
Total withdrawals and other debits -$155.48
Service fees
"""


@pytest.fixture
def chase_text() -> str:
    """Return extracted text of a Chase checking statement."""
    return """JPMorgan Chase Bank, N.A.
Chase Total Checking
Account Number: 000000123456789
June 1, 2023 through June 30, 2023
DEPOSITS AND ADDITIONS
DATE DESCRIPTION AMOUNT
06/01 Payroll Direct Deposit 3,000.00
Total Deposits and Additions $3,000.00
ELECTRONIC WITHDRAWALS
DATE DESCRIPTION AMOUNT
06/03 Online Payment 12345678 To Verizon Wireless 06/03 120.00
06/10 Orig CO Name:Geico Orig ID:9999 Desc Date:230610 CO Entry Descr:Prem Coll Sec:PPD 145.67
Total Electronic Withdrawals $265.67
DAILY ENDING BALANCE
"""


@pytest.fixture
def capital_one_text() -> str:
    """Return extracted text of a Capital One Venture statement crossing New Year."""
    return """Capital One
Venture Card | Account ending in 4321
Dec 15, 2023 - Jan 14, 2024 | 31 days in Billing Cycle
Payments, Credits and Adjustments
Trans Date Post Date Description Amount
Dec 20 Dec 20 CAPITAL ONE MOBILE PYMT - $500.00
Transactions
Trans Date Post Date Description Amount
Dec 18 Dec 19 NETFLIX.COM LOS GATOS CA $15.49
Jan 2 Jan 3 SPOTIFY USA 877-7781161 NY $10.99
Jan 10 Jan 11 SHELL OIL 12345 HOUSTON TX 77002 $45.00
Total Transactions for This Period $71.48
Interest Charge Calculation
"""


@pytest.fixture
def discover_text() -> str:
    """Return extracted text of a Discover it statement."""
    return """Discover it Card
Account number ending in 9876
Open Date: Sep 15, 2023 - Close Date: Oct 14, 2023
Payments and Credits
Oct 1 Oct 1 INTERNET PAYMENT - THANK YOU -$200.00
Purchases
Sep 16 Sep 16 NETFLIX.COM LOS GATOS CA $ 15.49
Sep 20 Sep 21 SHELL OIL #5555 AUSTIN TX $ 40.00
Fees
Interest Charged
"""


def wells_fargo_month(year: int, month: int, rows: list[str], account: str = "1234567890") -> str:
    """Build a one-month Wells Fargo statement text around transaction rows."""
    month_names = [
        "January", "February", "March", "April", "May", "June", "July",
        "August", "September", "October", "November", "December",
    ]
    name = month_names[month - 1]
    last_day = 30 if month in (4, 6, 9, 11) else 28 if month == 2 else 31
    body = "\n".join(rows)
    return f"""Wells Fargo Everyday Checking
Account number: {account}
{name} 1, {year} - {name} {last_day}, {year}
Transaction history
{body}
Totals
"""


@pytest.fixture
def wells_fargo_month_text():
    """Return the Wells Fargo statement builder."""
    return wells_fargo_month
