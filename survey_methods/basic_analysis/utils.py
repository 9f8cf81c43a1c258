"""
Common Utilities for Analysis Transcripts
=========================================

Shared formatting helpers and the stdout transcript used by every runner.
"""

from __future__ import annotations

import sys
if sys.platform.startswith("win") and hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding='utf-8')

from contextlib import redirect_stdout
from pathlib import Path
from typing import Optional, TextIO, Union

import pandas as pd


def format_pvalue(p: float, threshold: float = 0.001) -> str:
    """Format p-value for publication."""
    if pd.isna(p):
        return "NA"
    if p < threshold:
        return f"< {threshold}"
    return f"{p:.3f}"


def format_coefficient(value: float, decimals: int = 3) -> str:
    """Format coefficient for publication."""
    if pd.isna(value):
        return "NA"
    return f"{value:.{decimals}f}"


def significance_stars(p: float) -> str:
    """Conventional significance stars (*** < .001, ** < .01, * < .05)."""
    if pd.isna(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    return ""


def print_section_header(title: str, width: int = 70) -> None:
    """Print formatted section header."""
    print("\n" + "=" * width)
    print(title)
    print("=" * width)


def print_subsection_header(title: str, width: int = 70) -> None:
    """Print formatted subsection header."""
    print("\n" + "-" * width)
    print(title)
    print("-" * width)


def print_frame(df: pd.DataFrame, digits: int = 2, indent: str = "  ") -> None:
    """Print a DataFrame rounded to ``digits`` with every line indented."""
    text = df.round(digits).to_string()
    for line in text.splitlines():
        print(f"{indent}{line}")


# =============================================================================
# TRANSCRIPT
# =============================================================================

class _Tee:
    """File-like object writing to several streams."""

    def __init__(self, *streams: TextIO):
        self.streams = streams

    def write(self, text: str) -> int:
        for stream in self.streams:
            stream.write(text)
        return len(text)

    def flush(self) -> None:
        for stream in self.streams:
            stream.flush()


class Transcript:
    """
    Copy everything printed inside the block to a text file.

    With ``echo=True`` output still reaches the console, so a run can be
    watched live and read back from the file afterwards.

    Examples
    --------
    >>> with Transcript(output_dir / "ScaleConstruction.txt"):
    ...     run_all_variants()
    """

    def __init__(self, path: Union[str, Path], echo: bool = True, mode: str = "w"):
        self.path = Path(path)
        self.echo = echo
        self.mode = mode
        self._file: Optional[TextIO] = None
        self._redirect = None

    def __enter__(self) -> "Transcript":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, self.mode, encoding="utf-8")
        target = _Tee(sys.stdout, self._file) if self.echo else self._file
        self._redirect = redirect_stdout(target)
        self._redirect.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._redirect.__exit__(exc_type, exc, tb)
        self._file.close()
        self._file = None
        return False
