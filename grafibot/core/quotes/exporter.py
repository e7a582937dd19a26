"""
Export quotes to XLSX format.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from grafibot.config import settings
from grafibot.core.quotes.models import Quote, QuoteDocument

logger = logging.getLogger(__name__)


def make_reference(now: Optional[datetime] = None) -> str:
    """Dated quote reference, e.g. COT-20261017-3FA2C1."""
    now = now or datetime.now()
    return f"COT-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class QuoteExporter:
    """Export quotes to XLSX files."""

    # Styles
    HEADER_FONT = Font(bold=True, size=14)
    SUBHEADER_FONT = Font(bold=True, size=11)

    HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    HEADER_FONT_WHITE = Font(bold=True, size=11, color="FFFFFF")

    ALT_ROW_FILL = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")

    THIN_BORDER = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    CENTER_ALIGN = Alignment(horizontal='center', vertical='center')
    LEFT_ALIGN = Alignment(horizontal='left', vertical='center')
    RIGHT_ALIGN = Alignment(horizontal='right', vertical='center')

    MONEY_FORMAT = '"$"#,##0.00'

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = output_dir or settings.quotes_dir

    def export(self, quote: Quote) -> QuoteDocument:
        """
        Export quote to XLSX file.

        Args:
            quote: Non-empty quote to export

        Returns:
            QuoteDocument pointing at the created file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        created_at = datetime.now()
        reference = make_reference(created_at)
        filepath = self.output_dir / f"{reference}.xlsx"

        wb = Workbook()
        ws = wb.active
        ws.title = "Cotización"

        ws.column_dimensions['A'].width = 5
        ws.column_dimensions['B'].width = 45
        ws.column_dimensions['C'].width = 12
        ws.column_dimensions['D'].width = 10
        ws.column_dimensions['E'].width = 15
        ws.column_dimensions['F'].width = 15

        row = 1

        # === HEADER ===
        ws.merge_cells(f'A{row}:F{row}')
        cell = ws.cell(row=row, column=1, value=settings.store_name.upper())
        cell.font = self.HEADER_FONT
        cell.alignment = self.CENTER_ALIGN
        row += 1

        ws.merge_cells(f'A{row}:F{row}')
        cell = ws.cell(row=row, column=1, value=f"COTIZACIÓN {reference}")
        cell.font = self.SUBHEADER_FONT
        cell.alignment = self.CENTER_ALIGN
        row += 1

        ws.merge_cells(f'A{row}:F{row}')
        cell = ws.cell(row=row, column=1, value=f"Fecha: {created_at.strftime('%d/%m/%Y %H:%M')}")
        cell.alignment = self.CENTER_ALIGN
        row += 2

        # === ITEMS TABLE ===
        headers = ["#", "Producto", "ID", "Cantidad", "Precio unit.", "Importe"]
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.HEADER_FONT_WHITE
            cell.fill = self.HEADER_FILL
            cell.border = self.THIN_BORDER
            cell.alignment = self.CENTER_ALIGN
        row += 1

        for i, item in enumerate(quote.items, 1):
            values = [i, item.name, item.product_id, item.quantity, item.unit_price, item.subtotal]

            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = self.THIN_BORDER
                if col in (1, 3, 4):
                    cell.alignment = self.CENTER_ALIGN
                elif col in (5, 6):
                    cell.alignment = self.RIGHT_ALIGN
                    cell.number_format = self.MONEY_FORMAT
                else:
                    cell.alignment = self.LEFT_ALIGN

                if i % 2 == 0:
                    cell.fill = self.ALT_ROW_FILL
            row += 1

        # Total row
        ws.merge_cells(f'A{row}:E{row}')
        cell = ws.cell(row=row, column=1, value="TOTAL:")
        cell.font = self.SUBHEADER_FONT
        cell.border = self.THIN_BORDER
        cell.alignment = self.RIGHT_ALIGN

        cell = ws.cell(row=row, column=6, value=quote.total)
        cell.font = self.SUBHEADER_FONT
        cell.border = self.THIN_BORDER
        cell.alignment = self.RIGHT_ALIGN
        cell.number_format = self.MONEY_FORMAT
        row += 2

        ws.merge_cells(f'A{row}:F{row}')
        ws.cell(
            row=row,
            column=1,
            value="Precios sujetos a cambio y a disponibilidad de existencias.",
        ).alignment = self.LEFT_ALIGN

        wb.save(filepath)
        logger.info(f"Quote {reference} exported to {filepath}")

        return QuoteDocument(
            reference=reference,
            path=filepath,
            total=quote.total,
            created_at=created_at,
        )
