"""
Cell Extractor - positional row to typed entity projections.

Each data row of the invoice spreadsheet carries one invoice line plus
the customer, product and invoice header it belongs to:

    0 invoice_number   3 customer_address   6 product_price
    1 invoice_date     4 product_name       7 item_total
    2 customer_name    5 quantity           8 invoice_grand_total
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from services.exceptions import InvalidNumericValueError, MalformedRowError
from services.normalizer import to_decimal, to_integer

INVOICE_NUMBER = 0
INVOICE_DATE = 1
CUSTOMER_NAME = 2
CUSTOMER_ADDRESS = 3
PRODUCT_NAME = 4
QUANTITY = 5
PRODUCT_PRICE = 6
ITEM_TOTAL = 7
GRAND_TOTAL = 8

REQUIRED_CELLS = GRAND_TOTAL + 1

COLUMN_NAMES = {
    INVOICE_NUMBER: 'invoice_number',
    INVOICE_DATE: 'invoice_date',
    CUSTOMER_NAME: 'customer_name',
    CUSTOMER_ADDRESS: 'customer_address',
    PRODUCT_NAME: 'product_name',
    QUANTITY: 'quantity',
    PRODUCT_PRICE: 'product_price',
    ITEM_TOTAL: 'item_total',
    GRAND_TOTAL: 'invoice_grand_total',
}


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class InvoiceHeader(_Record):
    invoice_number: int
    invoice_date: Union[Decimal, date]
    grand_total: Decimal


class CustomerRecord(_Record):
    name: str
    address: str


class ProductRecord(_Record):
    name: str
    price: Decimal


class ItemRecord(_Record):
    invoice_number: int
    quantity: Decimal
    total: Decimal


class ExtractedRow(_Record):
    """The four projections of one spreadsheet row."""

    invoice: InvoiceHeader
    customer: CustomerRecord
    product: ProductRecord
    item: ItemRecord


def _cell(cells: Sequence, position: int, row_number: Optional[int]):
    """Return a required cell value, rejecting absent or blank cells."""
    if len(cells) <= position:
        raise MalformedRowError(
            f"Missing cell {position} ({COLUMN_NAMES[position]}); "
            f"row has {len(cells)} cells, {REQUIRED_CELLS} required",
            row_number
        )

    value = cells[position]
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedRowError(f"Empty cell {position} ({COLUMN_NAMES[position]})", row_number)
    if isinstance(value, bool):
        raise MalformedRowError(
            f"Cell {position} ({COLUMN_NAMES[position]}) holds a boolean", row_number
        )
    return value


def _text(cells: Sequence, position: int, row_number: Optional[int]) -> str:
    value = _cell(cells, position, row_number)
    if not isinstance(value, str):
        raise MalformedRowError(
            f"Cell {position} ({COLUMN_NAMES[position]}) must be text, "
            f"got {type(value).__name__}",
            row_number
        )
    return value


def _number(cells: Sequence, position: int, row_number: Optional[int]) -> Decimal:
    value = _cell(cells, position, row_number)
    if isinstance(value, (date, datetime)):
        raise MalformedRowError(
            f"Cell {position} ({COLUMN_NAMES[position]}) must be numeric, got a date",
            row_number
        )
    try:
        return to_decimal(value, COLUMN_NAMES[position])
    except InvalidNumericValueError as e:
        e.row_number = row_number
        raise


def extract_invoice(cells: Sequence, row_number: Optional[int] = None) -> InvoiceHeader:
    """Extract the invoice header projection (cells 0, 1 and 8)."""
    raw_number = _cell(cells, INVOICE_NUMBER, row_number)
    try:
        invoice_number = to_integer(raw_number, COLUMN_NAMES[INVOICE_NUMBER])
    except InvalidNumericValueError as e:
        e.row_number = row_number
        raise

    raw_date = _cell(cells, INVOICE_DATE, row_number)
    if isinstance(raw_date, datetime):
        invoice_date = raw_date.date()
    elif isinstance(raw_date, date):
        invoice_date = raw_date
    else:
        invoice_date = _number(cells, INVOICE_DATE, row_number)

    return InvoiceHeader(
        invoice_number=invoice_number,
        invoice_date=invoice_date,
        grand_total=_number(cells, GRAND_TOTAL, row_number),
    )


def extract_customer(cells: Sequence, row_number: Optional[int] = None) -> CustomerRecord:
    """Extract the customer projection (cells 2 and 3)."""
    return CustomerRecord(
        name=_text(cells, CUSTOMER_NAME, row_number),
        address=_text(cells, CUSTOMER_ADDRESS, row_number),
    )


def extract_product(cells: Sequence, row_number: Optional[int] = None) -> ProductRecord:
    """Extract the product projection (cells 4 and 6)."""
    return ProductRecord(
        name=_text(cells, PRODUCT_NAME, row_number),
        price=_number(cells, PRODUCT_PRICE, row_number),
    )


def extract_item(cells: Sequence, invoice_number: int,
                 row_number: Optional[int] = None) -> ItemRecord:
    """Extract the invoice line projection (cells 5 and 7)."""
    return ItemRecord(
        invoice_number=invoice_number,
        quantity=_number(cells, QUANTITY, row_number),
        total=_number(cells, ITEM_TOTAL, row_number),
    )


def extract_row(cells: Sequence, row_number: Optional[int] = None) -> ExtractedRow:
    """
    Split one row into its four projections.

    Cells past position 8 are ignored. Names are kept exactly as written.

    Raises:
        MalformedRowError: Fewer than 9 cells, or a required cell is empty
            or of the wrong kind.
        InvalidNumericValueError: A numeric cell holds non-numeric text.
    """
    if len(cells) < REQUIRED_CELLS:
        raise MalformedRowError(
            f"Row has {len(cells)} cells, {REQUIRED_CELLS} required", row_number
        )

    invoice = extract_invoice(cells, row_number)
    return ExtractedRow(
        invoice=invoice,
        customer=extract_customer(cells, row_number),
        product=extract_product(cells, row_number),
        item=extract_item(cells, invoice.invoice_number, row_number),
    )
