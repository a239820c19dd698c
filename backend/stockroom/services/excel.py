import io
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..models import Equipment, Withdrawal
from ..sites import Site


XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

STOCK_HEADERS = ["Name", "Category", "Quantity", "Unit", "Location", "Condition"]
WITHDRAWAL_HEADERS = ["Date", "Engineer", "Description", "Notes", "Items"]
EXPORT_HEADERS = ["Date", "Engineer", "Description", "Equipment", "Quantity", "Unit"]


def _value(v):
    return getattr(v, "value", v)


def _write_sheet(ws, headers: list[str], rows: Iterable[list]):
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    widths = [len(h) for h in headers]
    for row in rows:
        ws.append(row)
        for idx, v in enumerate(row):
            widths[idx] = max(widths[idx], len(str(v)) if v is not None else 0)
    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = min(width + 2, 60)


def _items_summary(withdrawal: Withdrawal) -> str:
    return "; ".join(f"{l.equipment_name} ({l.quantity_withdrawn} {l.unit})" for l in withdrawal.lines)


def _to_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_site_workbook(equipment: list[Equipment], withdrawals: list[Withdrawal]) -> bytes:
    wb = Workbook()
    stock = wb.active
    stock.title = "Site Stock"
    _write_sheet(
        stock,
        STOCK_HEADERS,
        (
            [e.name, _value(e.category), e.quantity, _value(e.unit), e.location, _value(e.condition)]
            for e in equipment
        ),
    )
    history = wb.create_sheet("Withdrawals")
    _write_sheet(
        history,
        WITHDRAWAL_HEADERS,
        (
            [w.withdrawal_date.isoformat(), w.engineer_name, w.description, w.notes, _items_summary(w)]
            for w in withdrawals
        ),
    )
    return _to_bytes(wb)


def sheet_title(site: Site) -> str:
    # Excel forbids []:*?/\ in titles and caps them at 31 characters
    title = "".join(ch for ch in site.display_name if ch not in "[]:*?/\\")
    return title[:31] or site.key


def build_multi_site_workbook(blocks: list[tuple[Site, list[Withdrawal]]]) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)
    for site, withdrawals in blocks:
        ws = wb.create_sheet(sheet_title(site))
        _write_sheet(
            ws,
            EXPORT_HEADERS,
            (
                [
                    w.withdrawal_date.isoformat(),
                    w.engineer_name,
                    w.description,
                    line.equipment_name,
                    line.quantity_withdrawn,
                    line.unit,
                ]
                for w in withdrawals
                for line in w.lines
            ),
        )
    return _to_bytes(wb)
