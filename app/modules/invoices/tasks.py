"""
Celery tasks for invoice printing
"""
import logging
from app.core.celery import celery_app
from app.core.config import settings
from app.modules.invoices.printing import SpoolPrintSurface, PrintError, print_document

logger = logging.getLogger(__name__)


def get_print_surface() -> SpoolPrintSurface:
    return SpoolPrintSurface(settings.PRINT_SPOOL_DIR, settings.PRINT_COMMAND)


@celery_app.task(bind=True)
def print_invoice_task(self, bill_number: str, html: str):
    """
    Send a rendered invoice to the print surface.
    Not retried: a failed print is reported and the user prints again.
    """
    try:
        path = print_document(get_print_surface(), html, f"Invoice_{bill_number}")
        logger.info(f"Invoice {bill_number} printed ({path})")
        return {"status": "success", "bill_number": bill_number, "path": str(path)}
    except PrintError as exc:
        logger.error(f"Unable to print invoice {bill_number}: {exc}")
        return {"status": "failed", "bill_number": bill_number, "error": str(exc)}
