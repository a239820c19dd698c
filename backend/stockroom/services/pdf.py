from datetime import datetime
from pathlib import Path

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..models import Withdrawal
from ..schemas import DailyReport
from ..sites import Site

# Optional Unicode font; without it the built-in Helvetica (latin-1) is used.
FONT_PATH = Path(__file__).resolve().parent.parent / "static" / "fonts" / "DejaVuSans.ttf"
NEXT_LINE = {"new_x": XPos.LMARGIN, "new_y": YPos.NEXT}


class _Document(FPDF):
    def __init__(self):
        super().__init__()
        self._unicode = FONT_PATH.exists()
        if self._unicode:
            self.add_font("Body", "", str(FONT_PATH))
            self.add_font("Body", "B", str(FONT_PATH))
            self._family = "Body"
        else:
            self._family = "Helvetica"
        self.add_page()
        self.use_font("", 12)

    def use_font(self, style: str, size: int):
        self.set_font(self._family, style, size)

    def plain(self, value) -> str:
        value = "" if value is None else str(value)
        if self._unicode:
            return value
        return value.encode("latin-1", "replace").decode("latin-1")

    def write_line(self, h: float, value, **kwargs):
        self.cell(0, h, self.plain(value), **NEXT_LINE, **kwargs)

    def write_row(self, widths: list[int], values: list, h: float = 8):
        for idx, (w, v) in enumerate(zip(widths, values)):
            extra = NEXT_LINE if idx == len(widths) - 1 else {}
            self.cell(w, h, self.plain(v), border=1, **extra)

    def to_bytes(self) -> bytes:
        return bytes(self.output())


def format_receipt_number(withdrawal: Withdrawal, site: Site) -> str:
    dt = withdrawal.created_at or datetime.utcnow()
    return f"WD-{site.key}-{dt.year}{str(dt.month).zfill(2)}-{str(withdrawal.id).zfill(6)}"


def render_withdrawal_receipt(withdrawal: Withdrawal, site: Site) -> bytes:
    pdf = _Document()
    pdf.use_font("B", 14)
    pdf.write_line(10, f"Equipment withdrawal {format_receipt_number(withdrawal, site)}")
    pdf.use_font("", 12)
    pdf.write_line(8, f"Site: {site.display_name}")
    pdf.write_line(8, f"Date: {withdrawal.withdrawal_date.strftime('%d.%m.%Y')}")
    pdf.write_line(8, f"Engineer: {withdrawal.engineer_name}")
    if withdrawal.description:
        pdf.write_line(8, f"Description: {withdrawal.description}")
    if withdrawal.notes:
        pdf.write_line(8, f"Notes: {withdrawal.notes}")

    pdf.ln(4)
    widths = [100, 40, 40]
    pdf.use_font("B", 12)
    pdf.write_row(widths, ["Equipment", "Quantity", "Unit"])
    pdf.use_font("", 11)
    for line in withdrawal.lines:
        pdf.write_row(widths, [line.equipment_name[:48], line.quantity_withdrawn, line.unit])

    pdf.ln(16)
    pdf.write_line(8, "Engineer signature: ____________________")
    pdf.write_line(8, "Storekeeper signature: ____________________")
    return pdf.to_bytes()


def render_daily_report_pdf(report: DailyReport) -> bytes:
    pdf = _Document()
    pdf.use_font("B", 14)
    pdf.write_line(10, f"Daily withdrawal report - {report.site_name}")
    pdf.use_font("", 12)
    pdf.write_line(8, f"Date: {report.report_date.strftime('%d.%m.%Y')}")
    pdf.write_line(8, f"Total withdrawn: {report.total_withdrawals}")

    pdf.ln(4)
    widths = [70, 25, 25, 70]
    pdf.use_font("B", 12)
    pdf.write_row(widths, ["Equipment", "Quantity", "Unit", "Engineers"])
    pdf.use_font("", 11)
    for usage in report.equipment_used:
        pdf.write_row(
            widths,
            [usage.equipment_name[:34], usage.quantity_withdrawn, usage.unit, ", ".join(usage.engineers)[:34]],
        )
    return pdf.to_bytes()
