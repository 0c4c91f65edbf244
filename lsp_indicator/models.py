"""
Data model for progress aggregation.

Runtime state (TokenState, AggregateState) is plain frozen dataclasses.
The LSP wire payload of a ``$/progress`` notification is validated with
Pydantic (ProgressParams, WorkDoneProgressValue) and converted into a
ProgressEvent before it reaches the store.

See https://microsoft.github.io/language-server-protocol/specifications/lsp/3.17/specification/#progress
"""

from __future__ import annotations

import math
from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

__all__ = [
    "ASCII_SEVERITY_ICONS",
    "ASCII_THEME",
    "DEFAULT_SEVERITY_ICONS",
    "IDLE",
    "PROGRESS_THEME",
    "STATE_THEME",
    "AggregateState",
    "ProgressEvent",
    "ProgressKind",
    "ProgressParams",
    "Severity",
    "Theme",
    "Token",
    "TokenState",
    "WorkDoneProgressValue",
    "Worker",
    "WorkerId",
]

WorkerId = Hashable
Token = int | str


# =============================================================================
# Progress events
# =============================================================================


class ProgressKind(str, Enum):
    """Kind of a work-done progress notification.

    Anything the server sends outside begin/report/end parses as ``other``
    and is handled like ``end``: the token stops being tracked.
    """

    begin = "begin"
    report = "report"
    end = "end"
    other = "other"

    @classmethod
    def _missing_(cls, value: object) -> ProgressKind:
        return cls.other

    @property
    def is_active(self) -> bool:
        """True for kinds that keep a token alive."""
        return self in (ProgressKind.begin, ProgressKind.report)


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification for a single token."""

    kind: ProgressKind
    percentage: int | None = None

    @classmethod
    def begin(cls, percentage: int | None = None) -> ProgressEvent:
        return cls(ProgressKind.begin, percentage)

    @classmethod
    def report(cls, percentage: int | None = None) -> ProgressEvent:
        return cls(ProgressKind.report, percentage)

    @classmethod
    def end(cls) -> ProgressEvent:
        return cls(ProgressKind.end)


@dataclass(frozen=True)
class TokenState:
    """State of one live progress stream."""

    busy: bool = True
    percentage: int | None = None


@dataclass(frozen=True)
class AggregateState:
    """Representative state over several tokens.

    ``busy`` without a ``percentage`` means busy with indeterminate progress.
    """

    busy: bool = False
    percentage: int | None = None


IDLE = AggregateState()


@dataclass(frozen=True)
class Worker:
    """A progress-emitting worker (language server client) attached to a view."""

    id: WorkerId
    name: str


# =============================================================================
# LSP wire models
# =============================================================================


def _clamp_percentage(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = float(value)
    elif isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"percentage must be a number, got {type(value).__name__}")
    if isinstance(value, float) and math.isnan(value):
        raise ValueError("percentage is NaN")
    # Compared as-is: float() overflows on huge JSON integers.
    return int(min(max(value, 0), 100))


class WorkDoneProgressValue(BaseModel):
    """``value`` of a work-done ``$/progress`` notification."""

    model_config = ConfigDict(extra="ignore")

    kind: ProgressKind = ProgressKind.other
    percentage: int | None = None
    title: str | None = None
    message: str | None = None
    cancellable: bool | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> ProgressKind:
        """Unknown kinds become ``other`` instead of failing validation."""
        return ProgressKind(v)

    @field_validator("percentage", mode="before")
    @classmethod
    def clamp_percentage(cls, v: Any) -> int | None:
        """Clamp to 0..100 and drop the fractional part."""
        return _clamp_percentage(v)


class ProgressParams(BaseModel):
    """Params of a ``$/progress`` notification."""

    model_config = ConfigDict(extra="ignore")

    token: int | str
    value: WorkDoneProgressValue

    def to_event(self) -> ProgressEvent:
        return ProgressEvent(self.value.kind, self.value.percentage)


# =============================================================================
# Themes
# =============================================================================


@dataclass(frozen=True)
class Theme:
    """Icons used to render a worker's representative state.

    Attributes:
        show_name: Append the worker name after its icon
        busy_icon: Shown when busy without a percentage
        idle_icon: Shown when no token is live
        progress_ramp: Icons from 0% to 100%. A string is split into
            its characters.
    """

    show_name: bool = False
    busy_icon: str = "*"
    idle_icon: str = "."
    progress_ramp: Sequence[str] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "progress_ramp", tuple(self.progress_ramp))

    def named(self) -> Theme:
        return replace(self, show_name=True)

    def unnamed(self) -> Theme:
        return replace(self, show_name=False)


# Nerd Font glyphs
_BUSY = "\uf138"
_IDLE = "\U000f0133"
_RAMP = (
    "\ue3d5\ue3d3\ue3d2\ue3d1\ue3d0\ue3cf\ue3ce"
    "\ue3cd\ue3cc\ue3cb\ue3ca\ue3c9\ue3c8\ue3e3"
)

PROGRESS_THEME = Theme(busy_icon=_BUSY, idle_icon=_IDLE, progress_ramp=_RAMP)
STATE_THEME = Theme(busy_icon=_BUSY, idle_icon=_IDLE, progress_ramp=_BUSY)
ASCII_THEME = Theme(busy_icon="*", idle_icon=".", progress_ramp="0123456789")


# =============================================================================
# Diagnostics
# =============================================================================


class Severity(IntEnum):
    """LSP diagnostic severity, most severe first."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4

    @classmethod
    def parse(cls, value: str | int) -> Severity:
        """Parse a severity from its number, name or common abbreviation.

        Raises:
            ValueError: If the value names no severity.
        """
        if isinstance(value, int):
            return cls(value)
        key = value.strip().upper()
        if key.isdigit():
            return cls(int(key))
        aliases = {"ERR": "ERROR", "WARN": "WARNING", "INFO": "INFORMATION"}
        try:
            return cls[aliases.get(key, key)]
        except KeyError:
            raise ValueError(f"Unknown severity: {value!r}") from None


DEFAULT_SEVERITY_ICONS: dict[Severity, str] = {
    Severity.ERROR: "\U000f015a",
    Severity.WARNING: "\uea6c",
    Severity.INFORMATION: "\U000f02fd",
    Severity.HINT: "\U000f06e9",
}

ASCII_SEVERITY_ICONS: dict[Severity, str] = {
    Severity.ERROR: "E",
    Severity.WARNING: "W",
    Severity.INFORMATION: "I",
    Severity.HINT: "H",
}
