"""
Storage ports consumed by the invoice importer.

The importer only ever creates entities and needs the new id back; it
never reads, updates or deletes. :class:`SqlAlchemyStorage` provides the
ports on top of the repositories.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.orm import Session

from services.repositories import (
    CustomerRepository, ProductRepository, InvoiceRepository, InvoiceItemRepository
)


class StoragePorts(Protocol):
    """Create-only persistence operations, each returning the new id."""

    def create_customer(self, name: str, address: str) -> int: ...

    def create_product(self, name: str, price: Decimal) -> int: ...

    def create_invoice(self, invoice_date: str, customer_id: int, grand_total: Decimal) -> int: ...

    def create_invoice_item(self, invoice_id: int, product_id: int,
                            quantity: Decimal, total: Decimal) -> int: ...


class SqlAlchemyStorage:
    """Storage ports backed by one SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session
        self.customers = CustomerRepository(session)
        self.products = ProductRepository(session)
        self.invoices = InvoiceRepository(session)
        self.invoice_items = InvoiceItemRepository(session)

    def create_customer(self, name: str, address: str) -> int:
        return self.customers.create({'name': name, 'address': address})

    def create_product(self, name: str, price: Decimal) -> int:
        return self.products.create({'name': name, 'price': price})

    def create_invoice(self, invoice_date: str, customer_id: int, grand_total: Decimal) -> int:
        return self.invoices.create({
            'invoice_date': invoice_date,
            'customer_id': customer_id,
            'grand_total': grand_total,
        })

    def create_invoice_item(self, invoice_id: int, product_id: int,
                            quantity: Decimal, total: Decimal) -> int:
        return self.invoice_items.create({
            'invoice_id': invoice_id,
            'product_id': product_id,
            'quantity': quantity,
            'total': total,
        })
