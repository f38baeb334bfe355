"""Custom exceptions for the arxmldiff engine."""


class ArxmlDiffError(Exception):
    """Base exception for arxmldiff errors."""
    pass


class ParseError(ArxmlDiffError):
    """Raised when a document is not well-formed XML."""
    def __init__(self, message: str, line: int = None, column: int = None, reason: str = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.reason = reason

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "reason": self.reason,
        }


class ConfigError(ArxmlDiffError):
    """Raised when engine configuration is invalid."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ExportError(ArxmlDiffError):
    """Raised when a parsed document cannot be written to a workbook."""
    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot export to {path}: {reason}")
        self.path = path
        self.reason = reason
