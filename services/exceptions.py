"""
Error types raised by the invoice import pipeline.

Every failure that can end an import run derives from
:class:`InvoiceImportError` so callers can tell failure causes apart.
"""

from typing import Optional


class InvoiceImportError(Exception):
    """Base class for all import failures."""

    kind = 'import_error'

    def __init__(self, message: str, row_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.row_number = row_number

    def __str__(self):
        if self.row_number is not None:
            return f"Row {self.row_number}: {self.message}"
        return self.message


class RowSourceError(InvoiceImportError):
    """The spreadsheet could not be opened or read."""

    kind = 'row_source_error'


class RowSourceOpenError(RowSourceError):
    """The spreadsheet is missing, unreadable or not a workbook."""

    kind = 'row_source_open_error'


class RowSourceReadError(RowSourceError):
    """The spreadsheet failed while rows were being streamed."""

    kind = 'row_source_read_error'


class MalformedRowError(InvoiceImportError):
    """A required positional cell is missing or has the wrong shape."""

    kind = 'malformed_row'


class InvalidNumericValueError(InvoiceImportError):
    """A numeric cell holds something that cannot be parsed as a number."""

    kind = 'invalid_numeric_value'

    def __init__(self, field: str, value, row_number: Optional[int] = None):
        super().__init__(f"Invalid numeric value for '{field}': {value!r}", row_number)
        self.field = field
        self.value = value


class StorageWriteError(InvoiceImportError):
    """A storage port failed to create an entity."""

    kind = 'storage_write_error'


class UnknownResourceError(LookupError):
    """No repository is registered under the requested resource name."""
