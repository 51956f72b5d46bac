"""
Invoice rendering and printing

- InvoiceDocument: what the printed page shows (number, date, customer, lines, subtotal)
- InvoiceRenderer: Jinja2 layouts "standard" (2 decimals) and "credit" (3 decimals)
- print surfaces + print_invoice_task: hand the rendered page to a printer or spool dir

Discount is always 0 and Net Amount equals Subtotal.
"""

from .schemas import InvoiceDocument, InvoiceLine, InvoiceLayout
from .renderer import InvoiceRenderer, invoice_renderer

__all__ = [
    "InvoiceDocument", "InvoiceLine", "InvoiceLayout",
    "InvoiceRenderer", "invoice_renderer",
]
