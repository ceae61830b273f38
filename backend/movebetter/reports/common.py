"""Shared fpdf2 page furniture for clinic documents."""
import logging
from datetime import datetime

from fpdf import FPDF

from ..core.config import settings

logger = logging.getLogger(__name__)

PRIMARY_COLOR = (37, 99, 235)
TEXT_COLOR = (40, 40, 40)
MUTED_COLOR = (110, 110, 110)
INCOME_COLOR = (0, 128, 0)
EXPENSE_COLOR = (200, 0, 0)


def pdf_text(value) -> str:
    """Core PDF fonts only cover latin-1; anything outside it becomes '?'."""
    return str(value).encode("latin-1", "replace").decode("latin-1")


class ClinicPDF(FPDF):
    def __init__(self, title: str, subtitle: str = ""):
        super().__init__()
        self.doc_title = title
        self.doc_subtitle = subtitle
        self.set_auto_page_break(auto=True, margin=15)
        self.set_title(pdf_text(title))
        self.add_page()

    def header(self):
        self.set_font("Helvetica", "B", 16)
        self.set_text_color(*PRIMARY_COLOR)
        self.cell(0, 10, pdf_text(settings.CLINIC_NAME), align="C", new_x="LMARGIN", new_y="NEXT")
        self.set_font("Helvetica", "B", 13)
        self.set_text_color(*TEXT_COLOR)
        self.cell(0, 8, pdf_text(self.doc_title), align="C", new_x="LMARGIN", new_y="NEXT")
        if self.doc_subtitle:
            self.set_font("Helvetica", size=10)
            self.set_text_color(*MUTED_COLOR)
            self.cell(0, 6, pdf_text(self.doc_subtitle), align="C", new_x="LMARGIN", new_y="NEXT")
        self.set_draw_color(*PRIMARY_COLOR)
        self.line(self.l_margin, self.get_y() + 2, self.w - self.r_margin, self.get_y() + 2)
        self.ln(6)

    def footer(self):
        self.set_y(-12)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(*MUTED_COLOR)
        generated = datetime.now().strftime("%d/%m/%Y %H:%M")
        self.cell(0, 6, pdf_text(f"Gerado em {generated} - página {self.page_no()}"), align="C")

    def section(self, title: str) -> None:
        self.ln(2)
        self.set_font("Helvetica", "B", 12)
        self.set_text_color(*PRIMARY_COLOR)
        self.cell(0, 8, pdf_text(title), new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(*TEXT_COLOR)

    def field(self, label: str, value: str) -> None:
        self.set_font("Helvetica", "B", 10)
        self.cell(60, 6, pdf_text(f"{label}:"))
        self.set_font("Helvetica", size=10)
        self.multi_cell(0, 6, pdf_text(value), new_x="LMARGIN", new_y="NEXT")

    def line_text(self, text: str, size: int = 10, style: str = "", color=TEXT_COLOR, indent: float = 0) -> None:
        self.set_font("Helvetica", style, size)
        self.set_text_color(*color)
        if indent:
            self.set_x(self.l_margin + indent)
        self.cell(0, 6, pdf_text(text), new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(*TEXT_COLOR)

    def to_bytes(self) -> bytes:
        # fpdf2 returns a bytearray
        data = bytes(self.output())
        logger.info("Generated PDF '%s': %s bytes", self.doc_title, len(data))
        return data
