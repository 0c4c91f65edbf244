"""Exceptions raised by lsp-indicator.

Progress and diagnostics handling never raises: bad telemetry degrades to
"stream ended" or is dropped with a warning. Errors are reserved for
tooling input such as replay files.
"""


class IndicatorError(Exception):
    """Base class for lsp-indicator errors."""


class ReplayError(IndicatorError):
    """Raised when a replay file cannot be parsed."""

    def __init__(self, message: str, line_number: int | None = None):
        self.message = message
        self.line_number = line_number
        where = f"line {line_number}: " if line_number is not None else ""
        super().__init__(f"{where}{message}")
