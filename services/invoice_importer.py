"""
Reconciling Importer - turns a stream of invoice rows into stored entities.

Rows are processed strictly in order. For each row the customer and
product are resolved (created on first sight), then the invoice (created
on first sight of its number), and finally one invoice line is always
created. The first error of any kind ends the run.
"""

import logging
from typing import Callable, Dict, Hashable, Iterable, Optional, Tuple

from pydantic import BaseModel, Field

from services.cell_extractor import ExtractedRow, extract_row
from services.deduplicator import EntityDeduplicator, EntityKind
from services.exceptions import InvoiceImportError, RowSourceError, StorageWriteError
from services.normalizer import to_calendar_date
from services.storage import StoragePorts

logger = logging.getLogger(__name__)

RowCallback = Callable[[int], None]


class ImportSummary(BaseModel):
    """Counts of entities created by one import run."""

    customers: int = Field(0, ge=0, description="Customers created")
    products: int = Field(0, ge=0, description="Products created")
    invoices: int = Field(0, ge=0, description="Invoices created")
    invoice_items: int = Field(0, ge=0, description="Invoice lines created")


class ImportResult:
    """
    Outcome of an import run: a summary on success, a typed error on failure.

    A failed result never exposes a summary. ``attempted`` holds the counts
    reached before the failure, for diagnostics only. ``committed_rows``
    is filled in by callers that commit as they go.
    """

    def __init__(self, summary: Optional[ImportSummary] = None,
                 error: Optional[InvoiceImportError] = None,
                 rows_processed: int = 0,
                 attempted: Optional[ImportSummary] = None,
                 committed_rows: int = 0):
        if (summary is None) == (error is None):
            raise ValueError("ImportResult needs exactly one of summary or error")
        self.summary = summary
        self.error = error
        self.rows_processed = rows_processed
        self.attempted = attempted
        self.committed_rows = committed_rows

    @classmethod
    def success(cls, summary: ImportSummary, rows_processed: int) -> 'ImportResult':
        return cls(summary=summary, rows_processed=rows_processed, committed_rows=rows_processed)

    @classmethod
    def failure(cls, error: InvoiceImportError, rows_processed: int = 0,
                attempted: Optional[ImportSummary] = None) -> 'ImportResult':
        return cls(error=error, rows_processed=rows_processed, attempted=attempted)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def unwrap(self) -> ImportSummary:
        """Return the summary, or raise the error of a failed run."""
        if self.error is not None:
            raise self.error
        return self.summary

    def to_dict(self) -> dict:
        if self.succeeded:
            return {
                'status': 'success',
                'summary': self.summary.model_dump(),
                'rows_processed': self.rows_processed,
            }
        return {
            'status': 'failed',
            'error': {
                'kind': self.error.kind,
                'message': self.error.message,
                'row_number': self.error.row_number,
            },
            'rows_processed': self.rows_processed,
            'committed_rows': self.committed_rows,
        }

    def __repr__(self):
        if self.succeeded:
            return f"<ImportResult(success, {self.summary!r})>"
        return f"<ImportResult(failed, {self.error.kind}, row={self.error.row_number})>"


class _ImportRun:
    """Mutable state of one run; discarded when the run ends."""

    def __init__(self):
        self.dedup = EntityDeduplicator()
        self.summary = ImportSummary()
        self.rows_processed = 0
        # First values stored for each deduplicated key, to report later rows that disagree
        self.first_values: Dict[Tuple[EntityKind, Hashable], tuple] = {}


class InvoiceImporter:
    """
    Streaming import engine over injected storage ports.

    The importer never commits or rolls back. ``row_callback`` is called
    with the row number once every write of that row has succeeded, which
    lets the caller decide how to scope transactions.
    """

    def __init__(
        self,
        storage: StoragePorts,
        progress_callback: Optional[Callable[[str, float, str], None]] = None,
        row_callback: Optional[RowCallback] = None
    ):
        """
        Initialize the importer.

        Args:
            storage: Implementation of the four create operations
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
            row_callback: Optional callback invoked after each fully written row
        """
        self.storage = storage
        self.progress_callback = progress_callback or (lambda *args: None)
        self.row_callback = row_callback or (lambda row_number: None)

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.info(f"Progress: {stage} ({percent:.1f}%) - {message}")

    def import_rows(self, rows: Iterable[Tuple[int, tuple]]) -> ImportResult:
        """
        Import ``(row_number, cells)`` pairs in order.

        Each call is a separate run with its own deduplication tables.

        Returns:
            ImportResult with the summary, or with the first error met.
        """
        run = _ImportRun()
        row_number = None

        self._emit_progress('importing', 0.0, 'Import started')

        try:
            for row_number, cells in rows:
                self._import_row(run, row_number, cells)
                self.row_callback(row_number)
                run.rows_processed += 1
        except InvoiceImportError as e:
            return self._handle_row_failure(run, e, row_number)

        summary = run.summary
        logger.info(
            f"Import completed: {run.rows_processed} rows, {summary.customers} customers, "
            f"{summary.products} products, {summary.invoices} invoices, "
            f"{summary.invoice_items} invoice items"
        )
        self._emit_progress('complete', 100.0, f'Imported {run.rows_processed} rows')
        return ImportResult.success(summary, run.rows_processed)

    def _handle_row_failure(self, run: _ImportRun, error: InvoiceImportError,
                            row_number: Optional[int]) -> ImportResult:
        """
        Decide what a failed row does to the run.

        Every failure kind is fatal: a malformed or unparsable row points
        at a corrupt file and a storage failure at a broken store, so no
        row is ever skipped.
        """
        if error.row_number is None and not isinstance(error, RowSourceError):
            error.row_number = row_number

        logger.error(
            f"Import aborted after {run.rows_processed} rows ({error.kind}): {error}",
            exc_info=error
        )
        self._emit_progress('failed', 100.0, str(error))
        return ImportResult.failure(error, run.rows_processed, run.summary.model_copy())

    def _import_row(self, run: _ImportRun, row_number: int, cells: tuple):
        row = extract_row(cells, row_number)

        customer_id = self._resolve_customer(run, row)
        product_id = self._resolve_product(run, row)
        invoice_id = self._resolve_invoice(run, row, customer_id)

        self._create(
            'invoice item', self.storage.create_invoice_item,
            invoice_id=invoice_id,
            product_id=product_id,
            quantity=row.item.quantity,
            total=row.item.total,
        )
        run.summary.invoice_items += 1
        logger.debug(f"Row {row_number}: line for invoice {row.invoice.invoice_number} created")

    def _seen(self, run: _ImportRun, kind: EntityKind, key: Hashable,
              values: tuple) -> Optional[int]:
        """Look ``key`` up; warn when a repeat carries different values than the first row."""
        entity_id = run.dedup.lookup(kind, key)
        if entity_id is not None:
            first = run.first_values[(kind, key)]
            if first != values:
                logger.warning(
                    f"{kind.value} {key!r} repeats with {values}; keeping first values {first}"
                )
        return entity_id

    def _remember(self, run: _ImportRun, kind: EntityKind, key: Hashable,
                  entity_id: int, values: tuple):
        run.dedup.register(kind, key, entity_id)
        run.first_values[(kind, key)] = values

    def _resolve_customer(self, run: _ImportRun, row: ExtractedRow) -> int:
        customer = row.customer
        values = (customer.address,)
        customer_id = self._seen(run, EntityKind.CUSTOMER, customer.name, values)
        if customer_id is not None:
            return customer_id

        customer_id = self._create(
            'customer', self.storage.create_customer,
            name=customer.name, address=customer.address,
        )
        self._remember(run, EntityKind.CUSTOMER, customer.name, customer_id, values)
        run.summary.customers += 1
        return customer_id

    def _resolve_product(self, run: _ImportRun, row: ExtractedRow) -> int:
        product = row.product
        values = (product.price,)
        product_id = self._seen(run, EntityKind.PRODUCT, product.name, values)
        if product_id is not None:
            return product_id

        product_id = self._create(
            'product', self.storage.create_product,
            name=product.name, price=product.price,
        )
        self._remember(run, EntityKind.PRODUCT, product.name, product_id, values)
        run.summary.products += 1
        return product_id

    def _resolve_invoice(self, run: _ImportRun, row: ExtractedRow, customer_id: int) -> int:
        invoice = row.invoice
        values = (invoice.invoice_date, invoice.grand_total)
        invoice_id = self._seen(run, EntityKind.INVOICE, invoice.invoice_number, values)
        if invoice_id is not None:
            return invoice_id

        invoice_date = to_calendar_date(invoice.invoice_date)
        invoice_id = self._create(
            'invoice', self.storage.create_invoice,
            invoice_date=invoice_date,
            customer_id=customer_id,
            grand_total=invoice.grand_total,
        )
        self._remember(run, EntityKind.INVOICE, invoice.invoice_number, invoice_id, values)
        run.summary.invoices += 1
        return invoice_id

    @staticmethod
    def _create(entity: str, create: Callable[..., int], **values) -> int:
        """Call one storage port, turning any unexpected failure into StorageWriteError."""
        try:
            return create(**values)
        except InvoiceImportError:
            raise
        except Exception as e:
            raise StorageWriteError(f"Creating {entity} failed: {e}") from e
