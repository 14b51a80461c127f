"""
Pytest configuration and fixtures for invoice import tests.
"""

import os
import pytest
from dotenv import load_dotenv
from openpyxl import Workbook

from backend.database import create_db_engine, make_session_factory
from backend.models.schema import Base

# Load environment
load_dotenv()

HEADER = [
    'Invoice Number', 'Invoice Date', 'Customer Name', 'Customer Address',
    'Product Name', 'Quantity', 'Product Price', 'Item Total', 'Grand Total'
]


class FakeStorage:
    """In-memory storage ports recording every create call."""

    def __init__(self, fail_on=None, fail_at_call=1):
        self.calls = []
        self.rows = {
            'create_customer': [],
            'create_product': [],
            'create_invoice': [],
            'create_invoice_item': [],
        }
        self.fail_on = fail_on
        self.fail_at_call = fail_at_call

    def _create(self, operation, values):
        self.calls.append((operation, values))
        created = self.rows[operation]
        if operation == self.fail_on and len(created) + 1 == self.fail_at_call:
            raise RuntimeError(f"{operation} unavailable")
        created.append(values)
        return len(created)

    def create_customer(self, name, address):
        return self._create('create_customer', {'name': name, 'address': address})

    def create_product(self, name, price):
        return self._create('create_product', {'name': name, 'price': price})

    def create_invoice(self, invoice_date, customer_id, grand_total):
        return self._create('create_invoice', {
            'invoice_date': invoice_date,
            'customer_id': customer_id,
            'grand_total': grand_total,
        })

    def create_invoice_item(self, invoice_id, product_id, quantity, total):
        return self._create('create_invoice_item', {
            'invoice_id': invoice_id,
            'product_id': product_id,
            'quantity': quantity,
            'total': total,
        })

    def count(self, operation):
        return len(self.rows[operation])


def numbered(rows, first_row=2):
    """Pair rows with their spreadsheet row numbers (row 1 is the header)."""
    return list(enumerate(rows, start=first_row))


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def sample_rows():
    """Acme buys Widgets twice on separate invoices, then Globex appears."""
    return [
        [1001, 44197, 'Acme', '1 Main St', 'Widget', 2, 10.5, 21.0, 21.0],
        [1002, 44198, 'Acme', '1 Main St', 'Widget', 1, 10.5, 10.5, 10.5],
        [1003, 44199, 'Globex', '9 Side Rd', 'Widget', 3, 10.5, 31.5, 31.5],
    ]


@pytest.fixture
def make_workbook(tmp_path):
    """Write rows to an .xlsx file; returns its path."""

    def _make(rows, name='invoices.xlsx', header=True, sheets=None):
        workbook = Workbook()
        workbook.remove(workbook.active)
        sheets = sheets or {'Sheet1': rows}
        for title, sheet_rows in sheets.items():
            worksheet = workbook.create_sheet(title)
            if header:
                worksheet.append(HEADER)
            for row in sheet_rows:
                worksheet.append(row)
        path = tmp_path / name
        workbook.save(path)
        return path

    return _make


@pytest.fixture
def database_url(tmp_path):
    """Database URL for one test (separate SQLite file unless overridden)."""
    return os.getenv('TEST_DATABASE_URL', f"sqlite:///{tmp_path / 'test.sqlite'}")


@pytest.fixture
def engine(database_url):
    """Create test database engine with the schema in place."""
    eng = create_db_engine(database_url)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    """Create a new database session for a test."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()
