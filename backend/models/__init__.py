"""Models package for the invoice import system."""
from backend.models.schema import Base, Customer, Product, Invoice, InvoiceItem

__all__ = ['Base', 'Customer', 'Product', 'Invoice', 'InvoiceItem']
