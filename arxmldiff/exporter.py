"""Spreadsheet export of a parsed ECU extract."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .exceptions import ExportError
from .models import ParsedDocument

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
HEADER_FONT = Font(name='Calibri', size=11, color="FFFFFF", bold=True)
DATA_FONT = Font(name='Calibri', size=10)
THIN_BORDER = Border(
    left=Side(style='thin'), right=Side(style='thin'),
    top=Side(style='thin'), bottom=Side(style='thin')
)
WRAP = Alignment(wrap_text=True, vertical='top')

SIGNAL_HEADERS = [
    "Signal Name", "Port Interface", "PDU Name", "Start Position (bits)",
    "Length (bits)", "Byte Order", "Data Type", "Init Value", "Min Value",
    "Max Value", "Factor", "Offset", "Description",
]
MESSAGE_HEADERS = [
    "Frame Name", "PDU Name", "CAN ID (Hex)", "PDU Type", "Direction",
    "Addressing", "Type", "Cycle Time (ms)", "Length (bytes)",
    "Signal Count", "Signals", "Description",
]
SIGNAL_GROUP_HEADERS = [
    "Signal Group Name", "Port Interface", "Signals Count", "Signals", "Description",
]
MESSAGE_GROUP_HEADERS = [
    "Message Group Name", "Messages Count", "Messages", "Description",
]

MESSAGE_WIDTHS = [25, 30, 12, 12, 10, 12, 10, 15, 12, 12, 40, 30]
SIGNAL_GROUP_WIDTHS = [30, 30, 15, 40, 30]
MESSAGE_GROUP_WIDTHS = [30, 15, 40, 30]


def _or_na(value: Any) -> Any:
    return value if value else NOT_AVAILABLE


def signal_rows(document: ParsedDocument) -> list[list[Any]]:
    return [
        [
            s.name,
            _or_na(s.port_interface),
            _or_na(s.pdu_name),
            s.start_position,
            s.length,
            s.byte_order.value,
            s.data_type,
            _or_na(s.init_value),
            _or_na(s.min_value),
            _or_na(s.max_value),
            _or_na(s.factor),
            _or_na(s.offset),
            _or_na(s.description),
        ]
        for s in document.signals
    ]


def message_rows(document: ParsedDocument) -> list[list[Any]]:
    return [
        [
            _or_na(m.frame_name),
            m.name,
            _or_na(m.can_id_hex),
            m.pdu_type.value,
            m.direction.value if m.direction else NOT_AVAILABLE,
            m.can_addressing_mode or m.addressing_format or NOT_AVAILABLE,
            m.type.value,
            _or_na(m.cycle_time),
            m.length,
            len(m.signals),
            "\n".join(m.signals),
            _or_na(m.description),
        ]
        for m in document.messages
    ]


def signal_group_rows(document: ParsedDocument) -> list[list[Any]]:
    return [
        [
            g.name,
            _or_na(g.port_interface),
            len(g.signals),
            "\n".join(g.signals),
            _or_na(g.description),
        ]
        for g in document.signal_groups
    ]


def message_group_rows(document: ParsedDocument) -> list[list[Any]]:
    return [
        [
            g.name,
            len(g.messages),
            "\n".join(g.messages),
            _or_na(g.description),
        ]
        for g in document.message_groups
    ]


def document_rows(document: ParsedDocument) -> dict[str, tuple[list[str], list[list[Any]]]]:
    """Sheet title -> (headers, rows) for every entity kind, in sheet order."""
    return {
        "Signals": (SIGNAL_HEADERS, signal_rows(document)),
        "Messages": (MESSAGE_HEADERS, message_rows(document)),
        "Signal Groups": (SIGNAL_GROUP_HEADERS, signal_group_rows(document)),
        "Message Groups": (MESSAGE_GROUP_HEADERS, message_group_rows(document)),
    }


_WIDTHS = {
    "Messages": MESSAGE_WIDTHS,
    "Signal Groups": SIGNAL_GROUP_WIDTHS,
    "Message Groups": MESSAGE_GROUP_WIDTHS,
}


def _style_header_row(ws, ncols):
    """Apply header styling (dark fill + white bold) to row 1."""
    for c in range(1, ncols + 1):
        cell = ws.cell(1, c)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal='center', vertical='center')


def _write_sheet(wb, title, headers, rows):
    ws = wb.create_sheet(title)
    for i, header in enumerate(headers, 1):
        ws.cell(1, i, header)
    _style_header_row(ws, len(headers))

    for r_idx, row in enumerate(rows, 2):
        for c_idx, value in enumerate(row, 1):
            cell = ws.cell(r_idx, c_idx, value)
            cell.font = DATA_FONT
            cell.border = THIN_BORDER
            if isinstance(value, str) and "\n" in value:
                cell.alignment = WRAP

    for i, width in enumerate(_WIDTHS.get(title, []), 1):
        ws.column_dimensions[get_column_letter(i)].width = width
    ws.freeze_panes = "A2"


def export_workbook(document: ParsedDocument, path: str | Path) -> Path:
    """
    Write a parsed document as an .xlsx workbook, one sheet per kind.

    Args:
        document: The parsed ECU extract
        path: Destination file

    Returns:
        The written path

    Raises:
        ExportError: If the workbook cannot be saved
    """
    path = Path(path)
    wb = Workbook()
    wb.remove(wb.active)

    for title, (headers, rows) in document_rows(document).items():
        _write_sheet(wb, title, headers, rows)

    try:
        wb.save(path)
    except OSError as e:
        raise ExportError(str(path), str(e)) from e

    logger.info("Exported %s to %s", document.counts(), path)
    return path
