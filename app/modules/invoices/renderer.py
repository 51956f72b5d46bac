"""
Invoice renderer: turns an InvoiceDocument into the printable HTML page.

Rendering is a pure function of its input; it does no I/O besides loading
the Jinja2 templates. Layout variants only change display (decimal places,
branch label, signature style), never the amounts.
"""
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
import logging

from app.common.validators import format_money
from app.modules.invoices.schemas import InvoiceDocument, InvoiceLayout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreHeader:
    name: str = "Al-Shamali Intl. Co. Auto Parts Center"
    brand: str = "EZZY STORE"
    tagline: str = "All Kind of Engine & Suspension Items"
    document_title: str = "CREDIT INVOICE"
    address: str = "Shuwaikh Industrial Area, Opp. Garage Noor"


@dataclass(frozen=True)
class LayoutSpec:
    template: str
    places: int
    branch: str


STORE = StoreHeader()

LAYOUTS = {
    InvoiceLayout.STANDARD: LayoutSpec(template="invoice_standard.html", places=2, branch="Main"),
    InvoiceLayout.CREDIT: LayoutSpec(template="invoice_credit.html", places=3, branch="HEAD OFFICE"),
}


def _money_filter(amount, places: int = 2) -> str:
    return format_money(amount if isinstance(amount, Decimal) else Decimal(str(amount)), places)


class InvoiceRenderer:
    """Jinja2 rendering of invoices"""

    def __init__(self, template_dir: Path = None):
        template_dir = template_dir or Path(__file__).parent / "templates"
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml']),
            undefined=StrictUndefined,
        )
        self.jinja_env.filters["money"] = _money_filter

    def render(self, document: InvoiceDocument, layout: InvoiceLayout = InvoiceLayout.STANDARD) -> str:
        spec = LAYOUTS[InvoiceLayout(layout)]
        try:
            template = self.jinja_env.get_template(spec.template)
            return template.render(invoice=document, layout=spec, store=STORE)
        except Exception as e:
            logger.error(f"Error rendering invoice {document.bill_number}: {str(e)}")
            raise


invoice_renderer = InvoiceRenderer()
