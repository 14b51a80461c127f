"""
Repositories for the invoice tables.

Each repository wraps one table behind ``create``/``all``/``find``. Rows
are returned as plain dictionaries keyed by column name. Database errors
are re-raised as :class:`StorageWriteError` on writes.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.schema import Base, Customer, Product, Invoice, InvoiceItem
from services.exceptions import StorageWriteError, UnknownResourceError

logger = logging.getLogger(__name__)


def _as_dict(instance: Base) -> Dict[str, Any]:
    return {column.name: getattr(instance, column.key)
            for column in instance.__table__.columns}


class BaseRepository:
    """Common operations shared by all repositories."""

    model: Type[Base] = None

    def __init__(self, session: Session):
        self.session = session

    def _prepare(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for per-table value conversion before insert."""
        return data

    def create(self, data: Dict[str, Any]) -> int:
        """
        Insert a new row and return its id.

        The row is flushed, not committed; the transaction belongs to
        whoever owns the session.

        Raises:
            StorageWriteError: If the insert fails.
        """
        try:
            instance = self.model(**self._prepare(data))
            self.session.add(instance)
            self.session.flush()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            raise StorageWriteError(
                f"Insert into {self.model.__tablename__} failed: {e}"
            ) from e

        logger.debug(f"Inserted {self.model.__tablename__} id={instance.id}")
        return instance.id

    def all(self) -> List[Dict[str, Any]]:
        """Return every row ordered by id."""
        rows = self.session.query(self.model).order_by(self.model.id).all()
        return [_as_dict(row) for row in rows]

    def find(self, entity_id: int) -> Optional[Dict[str, Any]]:
        """Return one row by id, or None."""
        instance = self.session.get(self.model, entity_id)
        return _as_dict(instance) if instance is not None else None


class CustomerRepository(BaseRepository):
    model = Customer


class ProductRepository(BaseRepository):
    model = Product


class InvoiceRepository(BaseRepository):
    model = Invoice

    def _prepare(self, data: Dict[str, Any]) -> Dict[str, Any]:
        prepared = dict(data)
        if isinstance(prepared.get('invoice_date'), str):
            prepared['invoice_date'] = date.fromisoformat(prepared['invoice_date'])
        return prepared

    def find_by_customer(self, customer_id: int) -> List[Dict[str, Any]]:
        """Return a customer's invoices, most recent first."""
        rows = (
            self.session.query(Invoice)
            .filter(Invoice.customer_id == customer_id)
            .order_by(Invoice.invoice_date.desc(), Invoice.id)
            .all()
        )
        return [_as_dict(row) for row in rows]


class InvoiceItemRepository(BaseRepository):
    model = InvoiceItem

    def find_by_invoice(self, invoice_id: int) -> List[Dict[str, Any]]:
        rows = (
            self.session.query(InvoiceItem)
            .filter(InvoiceItem.invoice_id == invoice_id)
            .order_by(InvoiceItem.id)
            .all()
        )
        return [_as_dict(row) for row in rows]

    def get_invoice_subtotal(self, invoice_id: int) -> Decimal:
        """Sum of line totals for one invoice (0 when it has no lines)."""
        subtotal = (
            self.session.query(func.sum(InvoiceItem.total))
            .filter(InvoiceItem.invoice_id == invoice_id)
            .scalar()
        )
        return Decimal(str(subtotal)) if subtotal is not None else Decimal('0')


RESOURCE_REPOSITORIES: Dict[str, Type[BaseRepository]] = {
    'customers': CustomerRepository,
    'products': ProductRepository,
    'invoices': InvoiceRepository,
    'invoice_items': InvoiceItemRepository,
}


def resolve_repository(resource: str, session: Session) -> BaseRepository:
    """
    Build the repository registered under ``resource`` (case-insensitive).

    Raises:
        UnknownResourceError: If no repository has that name.
    """
    try:
        repository_class = RESOURCE_REPOSITORIES[resource.lower()]
    except KeyError:
        raise UnknownResourceError(f"Unknown resource: {resource}") from None
    return repository_class(session)
