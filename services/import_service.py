"""
Invoice Import Service - runs one spreadsheet import inside a session.

This is the caller side of the importer: it opens the spreadsheet, binds
the storage ports to a fresh SQLAlchemy session and applies the configured
transaction mode.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from backend.config import TransactionMode
from services.exceptions import RowSourceOpenError, StorageWriteError
from services.invoice_importer import ImportResult, InvoiceImporter
from services.row_source import WorkbookRowSource
from services.storage import SqlAlchemyStorage

logger = logging.getLogger(__name__)


class InvoiceImportService:
    """
    Framework-agnostic invoice import service.

    Transaction modes:
        PER_ROW: every fully written row is committed before the next row
            is read. On failure only the failing row is rolled back; rows
            before it stay in the database. Best-effort, not atomic across
            the whole file.
        ATOMIC: one commit after the last row. Any failure rolls back the
            whole run, so the database is left as it was.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        transaction_mode: TransactionMode = TransactionMode.PER_ROW,
        sheet_name: Optional[str] = None,
        header_rows: int = 1,
        progress_callback: Optional[Callable[[str, float, str], None]] = None
    ):
        """
        Initialize invoice import service.

        Args:
            session_factory: Factory producing SQLAlchemy sessions
            transaction_mode: How writes of one run are committed
            sheet_name: Only read this worksheet (default: all worksheets)
            header_rows: Leading rows of each worksheet to skip
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
        """
        self.session_factory = session_factory
        self.transaction_mode = TransactionMode(transaction_mode)
        self.sheet_name = sheet_name
        self.header_rows = header_rows
        self.progress_callback = progress_callback

    def import_file(self, file_path: Union[str, Path]) -> ImportResult:
        """
        Import one spreadsheet.

        The spreadsheet is opened before any session exists, so a missing or
        unreadable file never touches the database.

        Returns:
            ImportResult; on failure ``committed_rows`` tells how many rows
            are left in the database.
        """
        logger.info(f"Starting import of {file_path} (transaction mode: {self.transaction_mode.value})")

        source = WorkbookRowSource(file_path, sheet_name=self.sheet_name, header_rows=self.header_rows)
        try:
            source.open()
        except RowSourceOpenError as e:
            logger.error(f"Error reading the spreadsheet: {e}")
            return ImportResult.failure(e)

        session = self.session_factory()
        committed_rows = 0

        def commit_row(row_number: int):
            nonlocal committed_rows
            try:
                session.commit()
            except SQLAlchemyError as e:
                raise StorageWriteError(f"Commit failed: {e}", row_number) from e
            committed_rows += 1

        row_callback = commit_row if self.transaction_mode == TransactionMode.PER_ROW else None
        importer = InvoiceImporter(
            SqlAlchemyStorage(session),
            progress_callback=self.progress_callback,
            row_callback=row_callback
        )

        try:
            with source:
                result = importer.import_rows(source)

            if result.succeeded:
                try:
                    session.commit()
                except SQLAlchemyError as e:
                    logger.error(f"Final commit of {file_path} failed: {e}", exc_info=True)
                    session.rollback()
                    failed = ImportResult.failure(
                        StorageWriteError(f"Commit failed: {e}"),
                        result.rows_processed,
                        result.summary
                    )
                    failed.committed_rows = committed_rows
                    return failed
                logger.info(f"Import of {file_path} committed: {result.summary.model_dump()}")
            else:
                session.rollback()
                result.committed_rows = committed_rows
                logger.warning(
                    f"Import of {file_path} failed; {committed_rows} rows remain committed"
                )
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
