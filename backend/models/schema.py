"""
SQLAlchemy models for the invoice import system.

This module defines the database schema using SQLAlchemy ORM,
matching the schema defined in the migration revisions.
"""

from sqlalchemy import (
    Column, Integer, Text, Numeric, Date, ForeignKey, Index
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Customer(Base):
    """A customer billed by one or more invoices."""

    __tablename__ = 'customers'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    name = Column(
        Text,
        nullable=False,
        comment='Customer name as written in the spreadsheet'
    )
    address = Column(
        Text,
        nullable=False,
        comment='Postal address'
    )

    invoices = relationship('Invoice', back_populates='customer', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"


class Product(Base):
    """A product sold on invoice lines."""

    __tablename__ = 'products'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    name = Column(
        Text,
        nullable=False,
        comment='Product name as written in the spreadsheet'
    )
    price = Column(
        Numeric(precision=8, scale=2),
        nullable=False,
        comment='Unit price (first value seen during import)'
    )

    items = relationship('InvoiceItem', back_populates='product')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"


class Invoice(Base):
    """An invoice header."""

    __tablename__ = 'invoices'
    __table_args__ = (
        Index('idx_invoices_customer_id', 'customer_id'),
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    invoice_date = Column(
        Date,
        nullable=False,
        comment='Invoice date converted from the spreadsheet serial'
    )
    customer_id = Column(
        Integer,
        ForeignKey('customers.id', ondelete='CASCADE'),
        nullable=False
    )
    grand_total = Column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment='Invoice grand total'
    )

    customer = relationship('Customer', back_populates='invoices')
    items = relationship('InvoiceItem', back_populates='invoice', cascade='all, delete-orphan')

    def __repr__(self):
        return (f"<Invoice(id={self.id}, invoice_date={self.invoice_date}, "
                f"customer_id={self.customer_id})>")


class InvoiceItem(Base):
    """A single invoice line; one per imported spreadsheet row."""

    __tablename__ = 'invoice_items'
    __table_args__ = (
        Index('idx_invoice_items_invoice_id', 'invoice_id'),
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    invoice_id = Column(
        Integer,
        ForeignKey('invoices.id', ondelete='CASCADE'),
        nullable=False
    )
    product_id = Column(
        Integer,
        ForeignKey('products.id'),
        nullable=False
    )
    quantity = Column(
        Numeric(precision=12, scale=3),
        nullable=False
    )
    total = Column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment='Line total'
    )

    invoice = relationship('Invoice', back_populates='items')
    product = relationship('Product', back_populates='items')

    def __repr__(self):
        return (f"<InvoiceItem(id={self.id}, invoice_id={self.invoice_id}, "
                f"product_id={self.product_id})>")
