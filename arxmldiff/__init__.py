"""
arxmldiff - AUTOSAR ECU Extract Parser and Comparison Engine

Extracts signals, PDUs, signal groups and PDU groups from an ARXML ECU
extract into flat records, and computes added/deleted/modified
differences between two extractions.
"""

from .engine import ArxmlDiffEngine, parse, compare
from .models import (
    EngineConfig,
    LogLevel,
    ByteOrder,
    MessageType,
    Direction,
    PduType,
    SignalRecord,
    MessageRecord,
    SignalGroupRecord,
    MessageGroupRecord,
    ParsedDocument,
    ModifiedEntry,
    KindDiff,
    ComparisonResult,
    DiffReport,
)
from .exceptions import (
    ArxmlDiffError,
    ParseError,
    ConfigError,
    ExportError,
)
from .references import ReferenceIndex, build_reference_index
from .differ import diff_collections, FieldDescriptor
from .exporter import export_workbook, document_rows
from .jsonpath_utils import select
from .runner import ArxmlDiffRunner, load_config

__version__ = "1.0.0"
__all__ = [
    # Engine
    "ArxmlDiffEngine",
    "EngineConfig",
    "LogLevel",
    "parse",
    "compare",
    # Records
    "ByteOrder",
    "MessageType",
    "Direction",
    "PduType",
    "SignalRecord",
    "MessageRecord",
    "SignalGroupRecord",
    "MessageGroupRecord",
    "ParsedDocument",
    # Results
    "ModifiedEntry",
    "KindDiff",
    "ComparisonResult",
    "DiffReport",
    # Errors
    "ArxmlDiffError",
    "ParseError",
    "ConfigError",
    "ExportError",
    # Building blocks
    "ReferenceIndex",
    "build_reference_index",
    "diff_collections",
    "FieldDescriptor",
    # Export and queries
    "export_workbook",
    "document_rows",
    "select",
    # Runner
    "ArxmlDiffRunner",
    "load_config",
]
