# CUI // SP-CTI
"""
appmig CLI Output Formatter
===========================

Terminal rendering for a migration run: the ``: OK`` / ``: DONE`` /
``: FAILED`` status words, the dry-run table of planned splits, the step
pipeline and the closing banner.

Colors are emitted only on a TTY, and never when ``NO_COLOR`` is set.
``FORCE_COLOR=1`` forces them on (useful under CI log viewers).

Usage::

    from appmig.cli.output_formatter import format_pipeline, format_status

    print(format_status("DONE"))
    print(format_pipeline([("10%", "completed"), ("100%", "pending")]))
"""

from __future__ import annotations

import os
import re
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

# ---------------------------------------------------------------------------
# ANSI color support
# ---------------------------------------------------------------------------

def _is_tty() -> bool:
    """Return True if stdout is connected to a terminal."""
    try:
        return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
    except ValueError:
        return False


_COLORS_ENABLED: bool = (
    os.environ.get("FORCE_COLOR", "") == "1"
    or (_is_tty() and os.environ.get("NO_COLOR") is None)
)


class _Ansi:
    """ANSI escape-code helpers.  All methods return plain text when color
    is disabled (piped output, NO_COLOR, etc.)."""

    _CODES = {
        "reset":  "\033[0m",
        "bold":   "\033[1m",
        "dim":    "\033[2m",
        "red":    "\033[31m",
        "green":  "\033[32m",
        "yellow": "\033[33m",
        "blue":   "\033[34m",
        "cyan":   "\033[36m",
    }

    @classmethod
    def wrap(cls, text: str, *styles: str) -> str:
        """Wrap *text* with one or more ANSI styles."""
        if not _COLORS_ENABLED or not styles:
            return text
        prefix = "".join(cls._CODES.get(s, "") for s in styles)
        return f"{prefix}{text}{cls._CODES['reset']}"

    @classmethod
    def strip(cls, text: str) -> str:
        """Remove all ANSI escape sequences from *text*."""
        return re.sub(r"\033\[[0-9;]*m", "", text)


C = _Ansi  # short alias

# ---------------------------------------------------------------------------
# Status words
# ---------------------------------------------------------------------------

# Progress-line markers and step states, matched case-insensitively.
_STATUS_STYLES: Dict[str, Tuple[str, ...]] = {
    "ok":        ("green",),
    "done":      ("green",),
    "completed": ("green",),
    "failed":    ("red", "bold"),
    "pending":   ("dim",),
    "skipped":   ("dim",),
}


def format_status(word: str) -> str:
    """Color a status word; anything unknown is returned unchanged."""
    styles = _STATUS_STYLES.get(str(word).strip().lower())
    return C.wrap(word, *styles) if styles else word

# ---------------------------------------------------------------------------
# Dry-run table
# ---------------------------------------------------------------------------

def format_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    title: Optional[str] = None,
) -> str:
    """Box-drawn table sized to its widest cell; status words are colored."""
    cells = [[str(c) for c in row] for row in rows]
    widths = [
        max([len(h)] + [len(row[i]) for row in cells if i < len(row)])
        for i, h in enumerate(headers)
    ]

    def rule(left: str, joint: str, right: str) -> str:
        return left + joint.join("─" * (w + 2) for w in widths) + right

    def line(values: Sequence[str], styler) -> str:
        padded = [styler(v) + " " * (w - len(v)) for v, w in zip(values, widths)]
        return "│ " + " │ ".join(padded) + " │"

    out: List[str] = []
    if title:
        out += [C.wrap(title, "bold"), ""]
    out.append(rule("┌", "┬", "┐"))
    out.append(line(list(headers), lambda h: C.wrap(h, "bold", "cyan")))
    out.append(rule("├", "┼", "┤"))
    out.extend(line(row, format_status) for row in cells)
    out.append(rule("└", "┴", "┘"))
    return "\n".join(out)

# ---------------------------------------------------------------------------
# Closing banner
# ---------------------------------------------------------------------------

# outcome -> (tag, styles)
_BANNERS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "completed": ("[OK]", ("green",)),
    "aborted":   ("[--]", ("yellow",)),
    "failed":    ("[XX]", ("red", "bold")),
    "dry_run":   ("[..]", ("blue",)),
}


def format_banner(outcome: str, message: str) -> str:
    """Three-line banner closing a run: rule, tagged message, rule."""
    tag, styles = _BANNERS.get(outcome, _BANNERS["dry_run"])
    body = f"  {tag}  {message}"
    rule = "═" * max(60, len(body) + 4)
    return "\n".join(C.wrap(text, *styles) for text in (rule, body, rule))

# ---------------------------------------------------------------------------
# Step pipeline
# ---------------------------------------------------------------------------

_STEP_GLYPHS = {
    "completed": "✔",
    "failed":    "✘",
    "skipped":   "─",
    "pending":   "○",
}


def format_pipeline(steps: Sequence[Tuple[str, str]]) -> str:
    """One line of ``(label, status)`` steps joined by arrows.

    Status is one of completed, failed, skipped or pending. The arrow
    leaving a completed step is green.
    """
    parts: List[str] = []
    for i, (label, status) in enumerate(steps):
        styles = _STATUS_STYLES.get(status, ("dim",))
        glyph = _STEP_GLYPHS.get(status, "○")
        if i:
            prev_done = steps[i - 1][1] == "completed"
            parts.append(C.wrap("─▸", "green" if prev_done else "dim"))
        parts.append(f" {C.wrap(glyph + ' ' + label, *styles)} ")
    return "".join(parts)
