"""File-based runner: loads configuration and two ARXML files and compares them."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import yaml

from .engine import ArxmlDiffEngine
from .exceptions import ConfigError
from .models import DiffReport, EngineConfig, ParsedDocument

logger = logging.getLogger(__name__)


def load_config(config_path: str | Path) -> EngineConfig:
    """
    Load an EngineConfig from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file cannot be parsed or has invalid keys
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        content = f.read()

    # YAML also handles JSON since JSON is valid YAML
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file: {e}", {"path": str(config_path)})

    return EngineConfig.from_dict(data)


class ArxmlDiffRunner:
    """
    Compares two ARXML files from disk.

    Usage:
        runner = ArxmlDiffRunner("base.arxml", "new.arxml")
        report = runner.run()
        runner.write_report(report, "report.json")

    Or as a one-liner:
        report = ArxmlDiffRunner.run_compare("base.arxml", "new.arxml")
    """

    def __init__(
        self,
        base_path: str,
        new_path: str,
        config_path: Optional[str] = None,
        engine_config: Optional[EngineConfig] = None
    ):
        """
        Initialize the runner.

        Args:
            base_path: Path to the baseline ARXML file
            new_path: Path to the ARXML file to check
            config_path: Optional YAML/JSON config file
            engine_config: Config to use when no config file is given
        """
        self.base_path = Path(base_path)
        self.new_path = Path(new_path)
        self.config_path = Path(config_path) if config_path else None
        self._engine_config = engine_config
        self._engine: Optional[ArxmlDiffEngine] = None
        self.base_document: Optional[ParsedDocument] = None
        self.new_document: Optional[ParsedDocument] = None

    @property
    def engine_config(self) -> EngineConfig:
        if self._engine_config is None:
            if self.config_path:
                self._engine_config = load_config(self.config_path)
            else:
                self._engine_config = EngineConfig()
        return self._engine_config

    @property
    def engine(self) -> ArxmlDiffEngine:
        if self._engine is None:
            self._engine = ArxmlDiffEngine(self.engine_config)
        return self._engine

    def load(self, path: Path) -> ParsedDocument:
        """Read and parse one ARXML file."""
        if not path.is_file():
            raise FileNotFoundError(f"ARXML file not found: {path}")
        logger.info("Parsing %s", path)
        return self.engine.parse(path.read_bytes())

    def run(self, print_report: bool = True) -> DiffReport:
        """
        Parse both files and compare them.

        Args:
            print_report: Whether to print the summary report

        Returns:
            DiffReport for base vs new
        """
        self.base_document = self.load(self.base_path)
        self.new_document = self.load(self.new_path)
        report = self.engine.compare(self.base_document, self.new_document)

        if print_report:
            report.print_summary()
        return report

    @staticmethod
    def write_report(report: DiffReport, report_path: str | Path) -> Path:
        """Write a report as indented JSON."""
        report_path = Path(report_path)
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2)
        return report_path

    @classmethod
    def run_compare(
        cls,
        base_path: str,
        new_path: str,
        config_path: Optional[str] = None,
        print_report: bool = True
    ) -> DiffReport:
        """
        Convenience class method to compare two files in one call.

        Example:
            report = ArxmlDiffRunner.run_compare("base.arxml", "new.arxml")
        """
        runner = cls(base_path, new_path, config_path)
        return runner.run(print_report=print_report)
