"""Main parse and comparison engine for arxmldiff."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from .differ import compare_documents
from .document import load_document
from .extractor import EntityExtractor
from .models import (
    ComparisonResult,
    DiffReport,
    EngineConfig,
    ExecutionInfo,
    ParsedDocument,
    Summary,
)
from .references import build_reference_index

logger = logging.getLogger(__name__)


class ArxmlDiffEngine:
    """
    Orchestrates the extraction pipeline and the comparison:

    1. Document loading: parse the XML and strip namespaces
    2. Reference indexing: resolve cross-references into lookup tables
    3. Entity extraction: build signal, message and group records
    4. Diffing: classify records as added, deleted or modified
    """

    VERSION = "1.0.0"

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (uses defaults if not provided)
        """
        self.config = config or EngineConfig()

    def parse(self, text: str | bytes) -> ParsedDocument:
        """
        Extract the data model of one ECU extract.

        Args:
            text: Raw ARXML text

        Returns:
            ParsedDocument with signals, messages and groups

        Raises:
            ParseError: If the text is not well-formed XML
        """
        start_time = time.time()

        root = load_document(text)
        index = build_reference_index(root, self.config.transmission_attributes_gid)
        document = EntityExtractor(root, index, self.config.pdu_tags).extract()

        logger.info(
            "Parsed %d signals, %d messages in %dms",
            len(document.signals),
            len(document.messages),
            int((time.time() - start_time) * 1000)
        )
        return document

    def compare(self, base: ParsedDocument, new: ParsedDocument) -> DiffReport:
        """
        Compare two parsed documents and wrap the result in a report.

        Args:
            base: The baseline extraction
            new: The extraction to check against the baseline

        Returns:
            DiffReport with execution metadata and per-kind differences
        """
        start_time = time.time()
        result = compare_documents(base, new)
        duration_ms = int((time.time() - start_time) * 1000)

        report = DiffReport(
            is_match=result.is_empty,
            execution=ExecutionInfo(
                duration_ms=duration_ms,
                timestamp=datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                engine_version=self.VERSION
            ),
            result=result,
        )

        if self.config.collect_statistics:
            report.summary = Summary.from_result(base, new, result)

        logger.debug("Compared documents in %dms, match=%s", duration_ms, report.is_match)
        return report

    def compare_texts(self, base_text: str | bytes, new_text: str | bytes) -> DiffReport:
        """Parse two documents and compare them."""
        return self.compare(self.parse(base_text), self.parse(new_text))


def parse(text: str | bytes, config: Optional[EngineConfig] = None) -> ParsedDocument:
    """
    Convenience function to parse one ECU extract.

    Raises:
        ParseError: If the text is not well-formed XML
    """
    return ArxmlDiffEngine(config).parse(text)


def compare(base: ParsedDocument, new: ParsedDocument) -> ComparisonResult:
    """Convenience function to diff two parsed documents."""
    return compare_documents(base, new)
