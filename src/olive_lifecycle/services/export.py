"""
Export System for the Olive Lifecycle Platform

This module writes tabular report data to CSV, JSON, XLSX and PDF files.
"""

import csv
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fpdf import FPDF
from fpdf.enums import XPos, YPos
from openpyxl import Workbook

from ..errors import ServiceError, ValidationError
from ..utils.datetime import now_utc


logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats"""
    CSV = "csv"
    JSON = "json"
    XLSX = "xlsx"
    PDF = "pdf"


@dataclass
class ExportData:
    """A titled table: one header row plus data rows of equal width"""
    headers: List[str]
    rows: List[List[Any]] = field(default_factory=list)
    title: Optional[str] = None

    def __post_init__(self):
        for index, row in enumerate(self.rows):
            if len(row) != len(self.headers):
                raise ValidationError(
                    f"Row {index} has {len(row)} cells, expected {len(self.headers)}"
                )


def sanitize_text_for_pdf(text: str) -> str:
    """Replace characters the core PDF fonts cannot encode."""
    replacements = {
        '\u2019': "'",  # Right single quotation mark
        '\u2018': "'",  # Left single quotation mark
        '\u201c': '"',  # Left double quotation mark
        '\u201d': '"',  # Right double quotation mark
        '\u2013': '-',  # En dash
        '\u2014': '-',
        '\u2026': '...',  # Horizontal ellipsis
        '\u2022': '*',  # Bullet
        '\u00a0': ' ',  # Non-breaking space
    }
    for unicode_char, replacement in replacements.items():
        text = text.replace(unicode_char, replacement)
    return text.encode('latin-1', errors='replace').decode('latin-1')


class BaseExporter(ABC):
    """Abstract base class for exporters"""

    @abstractmethod
    def render(self, data: ExportData) -> Union[str, bytes]:
        """Render the table to file content"""

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get recommended file extension"""


class CSVExporter(BaseExporter):
    """Export to CSV with every cell quoted"""

    def render(self, data: ExportData) -> str:
        output = StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writerow(data.headers)
        for row in data.rows:
            writer.writerow(["" if cell is None else cell for cell in row])
        return output.getvalue()

    def get_file_extension(self) -> str:
        return "csv"


class JSONExporter(BaseExporter):
    """Export to JSON as a list of header-keyed records"""

    def render(self, data: ExportData) -> str:
        export_data = {
            'title': data.title,
            'export_timestamp': now_utc().isoformat(),
            'headers': data.headers,
            'rows': [dict(zip(data.headers, row)) for row in data.rows],
        }
        return json.dumps(export_data, indent=2, ensure_ascii=False, default=str)

    def get_file_extension(self) -> str:
        return "json"


class XLSXExporter(BaseExporter):
    """Export to a single-sheet Excel workbook using openpyxl"""

    sheet_name = "Sheet1"

    def render(self, data: ExportData) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = self.sheet_name
        sheet.append(data.headers)
        for row in data.rows:
            sheet.append([self._cell(value) for value in row])

        output = BytesIO()
        workbook.save(output)
        return output.getvalue()

    @staticmethod
    def _cell(value: Any) -> Any:
        # Numbers stay numeric; anything else openpyxl may reject becomes text
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        return str(value)

    def get_file_extension(self) -> str:
        return "xlsx"


class PDFExporter(BaseExporter):
    """Export to an A4 PDF table using fpdf2"""

    margin = 10
    row_height = 7

    def render(self, data: ExportData) -> bytes:
        pdf = FPDF(orientation='P', unit='mm', format='A4')
        pdf.set_margins(self.margin, self.margin)
        pdf.set_auto_page_break(auto=True, margin=self.margin)
        pdf.add_page()

        if data.title:
            pdf.set_font('Helvetica', 'B', 16)
            pdf.cell(0, 10, sanitize_text_for_pdf(data.title), align='C',
                     new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font('Helvetica', '', 8)
            generated = now_utc().strftime('%B %d, %Y at %H:%M UTC')
            pdf.cell(0, 6, f'Generated on {generated}', align='C',
                     new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.ln(4)

        col_width = pdf.epw / max(len(data.headers), 1)

        pdf.set_font('Helvetica', 'B', 9)
        for header in data.headers:
            pdf.cell(col_width, self.row_height, self._fit(pdf, header, col_width), border=1)
        pdf.ln(self.row_height)

        pdf.set_font('Helvetica', '', 9)
        for row in data.rows:
            for cell in row:
                pdf.cell(col_width, self.row_height, self._fit(pdf, cell, col_width), border=1)
            pdf.ln(self.row_height)

        return bytes(pdf.output())

    @staticmethod
    def _fit(pdf: FPDF, value: Any, width: float) -> str:
        """Truncate a cell so it fits within its column."""
        text = sanitize_text_for_pdf("" if value is None else str(value))
        if pdf.get_string_width(text) <= width - 2:
            return text
        while text and pdf.get_string_width(text + '...') > width - 2:
            text = text[:-1]
        return text + '...'

    def get_file_extension(self) -> str:
        return "pdf"


class ExportManager:
    """Main export manager coordinating the exporters"""

    def __init__(self):
        self.exporters: Dict[ExportFormat, BaseExporter] = {
            ExportFormat.CSV: CSVExporter(),
            ExportFormat.JSON: JSONExporter(),
            ExportFormat.XLSX: XLSXExporter(),
            ExportFormat.PDF: PDFExporter(),
        }

    def get_supported_formats(self) -> List[ExportFormat]:
        return list(self.exporters.keys())

    def render(self, data: ExportData, format_type: ExportFormat) -> Union[str, bytes]:
        exporter = self.exporters.get(format_type)
        if exporter is None:
            raise ValidationError(f"Unsupported export format: {format_type}")
        return exporter.render(data)

    def export(self, data: ExportData, format_type: ExportFormat,
               filename: str = "export", output_dir: Optional[Path] = None) -> Path:
        """Write ``data`` to ``<output_dir>/<filename>.<ext>``.

        Returns:
            Path of the written file
        """
        exporter = self.exporters.get(format_type)
        if exporter is None:
            raise ValidationError(f"Unsupported export format: {format_type}")

        output_dir = Path(output_dir) if output_dir else Path.cwd()
        output_path = output_dir / f"{filename}.{exporter.get_file_extension()}"
        content = exporter.render(data)

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                output_path.write_bytes(content)
            else:
                output_path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise ServiceError(f"Failed to write export {output_path}: {e}") from e

        logger.info(f"Exported {len(data.rows)} rows to {output_path}")
        return output_path
