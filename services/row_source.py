"""
Row Source - lazy iteration over the data rows of an ``.xlsx`` workbook.
"""

import logging
import zipfile
from pathlib import Path
from typing import Iterator, Optional, Tuple

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from services.exceptions import RowSourceOpenError, RowSourceReadError

logger = logging.getLogger(__name__)

Row = Tuple[int, tuple]


def _is_blank(values: tuple) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


class WorkbookRowSource:
    """
    Single-pass stream of ``(row_number, cell_values)`` pairs.

    The workbook is opened in read-only mode so rows are pulled from disk
    one at a time. The first ``header_rows`` rows of every worksheet are
    skipped, as are rows with no values at all. ``row_number`` is the
    1-based row number inside its worksheet.

    Usage:
        with WorkbookRowSource('invoices.xlsx') as source:
            for row_number, cells in source:
                ...
    """

    def __init__(self, file_path, sheet_name: Optional[str] = None, header_rows: int = 1):
        if header_rows < 0:
            raise ValueError(f"header_rows must be 0 or more, got {header_rows}")
        self.file_path = Path(file_path)
        self.sheet_name = sheet_name
        self.header_rows = header_rows
        self._workbook = None
        self._consumed = False

    def open(self) -> 'WorkbookRowSource':
        """
        Open the workbook.

        Raises:
            RowSourceOpenError: The file is missing, unreadable, not a
                workbook, or lacks the configured worksheet.
        """
        if self._workbook is not None:
            return self

        if not self.file_path.is_file():
            raise RowSourceOpenError(f"Spreadsheet not found: {self.file_path}")

        try:
            self._workbook = openpyxl.load_workbook(self.file_path, read_only=True, data_only=True)
        except (OSError, zipfile.BadZipFile, InvalidFileException, KeyError, ValueError) as e:
            raise RowSourceOpenError(f"Cannot open spreadsheet {self.file_path}: {e}") from e

        if self.sheet_name is not None and self.sheet_name not in self._workbook.sheetnames:
            sheets = ', '.join(self._workbook.sheetnames)
            self.close()
            raise RowSourceOpenError(
                f"Worksheet '{self.sheet_name}' not found in {self.file_path} (sheets: {sheets})"
            )

        logger.info(f"Opened spreadsheet {self.file_path}")
        return self

    def close(self):
        if self._workbook is not None:
            self._workbook.close()
            self._workbook = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self) -> Iterator[Row]:
        if self._consumed:
            raise RowSourceReadError(f"Rows of {self.file_path} were already consumed")
        self._consumed = True
        self.open()
        return self._rows()

    def _rows(self) -> Iterator[Row]:
        if self.sheet_name is not None:
            worksheets = [self._workbook[self.sheet_name]]
        else:
            worksheets = list(self._workbook.worksheets)

        for worksheet in worksheets:
            logger.debug(f"Reading worksheet '{worksheet.title}'")
            rows = worksheet.iter_rows(min_row=self.header_rows + 1, values_only=True)
            row_number = self.header_rows
            while True:
                try:
                    values = next(rows)
                except StopIteration:
                    break
                except Exception as e:
                    raise RowSourceReadError(
                        f"Failed reading worksheet '{worksheet.title}' after row {row_number}: {e}"
                    ) from e

                row_number += 1
                if _is_blank(values):
                    logger.debug(f"Skipping empty row {row_number} in '{worksheet.title}'")
                    continue
                yield row_number, values
