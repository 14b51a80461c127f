"""
Tests for positional cell extraction.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from services.cell_extractor import (
    extract_row, extract_invoice, extract_customer, extract_product, extract_item
)
from services.exceptions import InvalidNumericValueError, MalformedRowError

ROW = [1001, 44197, 'Acme', '1 Main St', 'Widget', 2, 10.5, 21.0, 21.0]


class TestExtractRow:
    """Test splitting a row into its four projections."""

    def test_projections(self):
        row = extract_row(ROW, row_number=2)

        assert row.invoice.invoice_number == 1001
        assert row.invoice.invoice_date == Decimal('44197')
        assert row.invoice.grand_total == Decimal('21.0')
        assert row.customer.name == 'Acme'
        assert row.customer.address == '1 Main St'
        assert row.product.name == 'Widget'
        assert row.product.price == Decimal('10.5')
        assert row.item.invoice_number == 1001
        assert row.item.quantity == Decimal('2')
        assert row.item.total == Decimal('21.0')

    def test_string_cells_are_coerced(self):
        row = extract_row(['1001', '44197', 'Acme', 'x', 'Widget', '2', '10.50', '21', '21'])
        assert row.invoice.invoice_number == 1001
        assert row.product.price == Decimal('10.50')

    def test_extra_cells_ignored(self):
        row = extract_row(ROW + ['note', None])
        assert row.customer.name == 'Acme'

    def test_names_kept_verbatim(self):
        row = extract_row([1001, 44197, ' acme ', 'a', 'WIDGET', 1, 1, 1, 1])
        assert row.customer.name == ' acme '
        assert row.product.name == 'WIDGET'

    def test_date_cell_kept_as_date(self):
        cells = list(ROW)
        cells[1] = datetime(2021, 1, 1, 8, 30)
        row = extract_row(cells)
        assert row.invoice.invoice_date == date(2021, 1, 1)

    def test_short_row(self):
        with pytest.raises(MalformedRowError) as exc_info:
            extract_row(ROW[:8], row_number=7)
        assert exc_info.value.row_number == 7

    @pytest.mark.parametrize('position', [0, 2, 3, 4, 8])
    def test_empty_required_cell(self, position):
        cells = list(ROW)
        cells[position] = None
        with pytest.raises(MalformedRowError):
            extract_row(cells)

    def test_blank_text_cell(self):
        cells = list(ROW)
        cells[2] = '   '
        with pytest.raises(MalformedRowError):
            extract_row(cells)

    def test_number_where_name_expected(self):
        cells = list(ROW)
        cells[4] = 42
        with pytest.raises(MalformedRowError):
            extract_row(cells)

    def test_boolean_cell(self):
        cells = list(ROW)
        cells[5] = True
        with pytest.raises(MalformedRowError):
            extract_row(cells)

    def test_date_where_amount_expected(self):
        cells = list(ROW)
        cells[7] = date(2021, 1, 1)
        with pytest.raises(MalformedRowError):
            extract_row(cells)

    def test_non_numeric_amount(self):
        cells = list(ROW)
        cells[6] = 'ten'
        with pytest.raises(InvalidNumericValueError) as exc_info:
            extract_row(cells, row_number=4)
        assert exc_info.value.field == 'product_price'
        assert exc_info.value.row_number == 4

    def test_non_integral_invoice_number(self):
        cells = list(ROW)
        cells[0] = 1001.5
        with pytest.raises(InvalidNumericValueError):
            extract_row(cells)


class TestSingleProjections:
    """Test the per-entity extractors."""

    def test_extract_invoice(self):
        invoice = extract_invoice(ROW)
        assert (invoice.invoice_number, invoice.grand_total) == (1001, Decimal('21.0'))

    def test_extract_customer(self):
        assert extract_customer(ROW).name == 'Acme'

    def test_extract_product(self):
        assert extract_product(ROW).price == Decimal('10.5')

    def test_extract_item_passes_invoice_number(self):
        item = extract_item(ROW, 555)
        assert item.invoice_number == 555
        assert item.quantity == Decimal('2')

    def test_records_are_immutable(self):
        customer = extract_customer(ROW)
        with pytest.raises(Exception):
            customer.name = 'Other'
