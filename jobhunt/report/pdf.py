"""Resume PDF renderer — line-by-line flow layout of lightweight markdown.

Layout and drawing are separate: ``layout_markdown`` decides where every
line and rule goes (pages, baselines, fonts); ``render_pdf`` draws that
layout with fpdf2 core fonts. The same markdown always yields the same
layout.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from fpdf import FPDF
from fpdf.errors import FPDFException

from jobhunt.errors import RenderError
from jobhunt.models.outcome import RenderedFile

logger = logging.getLogger(__name__)

PAGE_WIDTH = 612.0  # US Letter, points
PAGE_HEIGHT = 792.0
PAGE_MARGIN = 50.0
LINE_HEIGHT = 14.0
HEADING_SIZE = 16.0
SUBHEADING_SIZE = 12.0
SECTION_SIZE = 11.0
BODY_SIZE = 10.0
MAX_TEXT_WIDTH = PAGE_WIDTH - PAGE_MARGIN * 2

FONT_FAMILY = "Helvetica"
BULLET = "·"
TEXT_COLOR = (26, 26, 26)
RULE_COLOR = (179, 179, 179)
RULE_THICKNESS = 0.5

MAX_STEM_CHARS = 150
URL_HASH_CHARS = 8

# Characters outside latin-1 that resumes commonly contain
_CORE_FONT_REPLACEMENTS = {
    "•": BULLET,
    "–": "-",
    "—": "-",
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "…": "...",
    "→": "->",
    "≤": "<=",
    "≥": ">=",
    "\u00a0": " ",
}

Measure = Callable[[str, bool, float], float]


@dataclass
class PlacedLine:
    page: int
    y: float  # baseline, from the top of the page
    text: str
    size: float
    bold: bool


@dataclass
class Rule:
    page: int
    y: float


@dataclass
class Layout:
    lines: list[PlacedLine] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)
    page_count: int = 1

    def text_lines(self) -> list[str]:
        return [line.text for line in self.lines]


# =============================================================================
# Layout
# =============================================================================


def layout_markdown(markdown: str, measure: Measure) -> Layout:
    """Flow the markdown onto fixed-size pages.

    Blank lines add half a line of space, ``---``/``***`` draw a rule,
    ``#``/``##``/``###`` select bold heading sizes, ``- ``/``* `` lines get a
    bullet glyph, inline emphasis markers are stripped, and every logical line
    is word-wrapped to the usable width. A new page starts whenever the cursor
    would cross the bottom margin.
    """
    layout = Layout()
    page = 1
    y = PAGE_MARGIN
    bottom = PAGE_HEIGHT - PAGE_MARGIN

    for line in markdown.splitlines():
        trimmed = line.strip()

        if not trimmed:
            y += LINE_HEIGHT * 0.5
            if y > bottom:
                page += 1
                y = PAGE_MARGIN
            continue

        if trimmed in ("---", "***"):
            y += 4
            if y > bottom:
                page += 1
                y = PAGE_MARGIN
            layout.rules.append(Rule(page=page, y=y))
            y += LINE_HEIGHT
            continue

        text, size, bold, extra_spacing = _line_style(trimmed)
        text = to_core_charset(strip_inline_markup(text))
        wrapped = wrap_text(text, bold, size, MAX_TEXT_WIDTH, measure)

        y += extra_spacing
        for wl in wrapped:
            if y > bottom - LINE_HEIGHT:
                page += 1
                y = PAGE_MARGIN
            layout.lines.append(PlacedLine(page=page, y=y, text=wl, size=size, bold=bold))
            y += LINE_HEIGHT

    layout.page_count = page
    return layout


def _line_style(trimmed: str) -> tuple[str, float, bool, float]:
    """(text, font size, bold, extra spacing before) for one markdown line."""
    if trimmed.startswith("# "):
        return trimmed[2:], HEADING_SIZE, True, 4
    if trimmed.startswith("## "):
        return trimmed[3:], SUBHEADING_SIZE, True, 6
    if trimmed.startswith("### "):
        return trimmed[4:], SECTION_SIZE, True, 4
    if trimmed.startswith("- ") or trimmed.startswith("* "):
        return f"  {BULLET}  {trimmed[2:]}", BODY_SIZE, False, 0
    return trimmed, BODY_SIZE, False, 0


def strip_inline_markup(text: str) -> str:
    """Remove **bold**, *italic* and `code` markers, keeping their text."""
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"\*(.*?)\*", r"\1", text)
    return re.sub(r"`(.*?)`", r"\1", text)


def to_core_charset(text: str) -> str:
    """Reduce text to what the built-in PDF fonts can encode."""
    for old, new in _CORE_FONT_REPLACEMENTS.items():
        text = text.replace(old, new)
    return text.encode("latin-1", "replace").decode("latin-1")


def wrap_text(text: str, bold: bool, size: float, max_width: float, measure: Measure) -> list[str]:
    """Greedy word wrap by measured width; a single over-long word gets its own line.

    Leading spaces (the bullet indent) stay on the first line.
    """
    lines: list[str] = []
    current: str | None = None

    for word in text.split(" "):
        candidate = word if current is None else f"{current} {word}"
        if current is not None and current.strip() and measure(candidate, bold, size) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate

    if current:
        lines.append(current)
    return lines or [""]


# =============================================================================
# Drawing
# =============================================================================


def _new_document() -> FPDF:
    pdf = FPDF(unit="pt", format="letter")
    pdf.set_auto_page_break(auto=False)
    pdf.set_margins(PAGE_MARGIN, PAGE_MARGIN, PAGE_MARGIN)
    return pdf


def _measurer(pdf: FPDF) -> Measure:
    def measure(text: str, bold: bool, size: float) -> float:
        pdf.set_font(FONT_FAMILY, style="B" if bold else "", size=size)
        return pdf.get_string_width(text)

    return measure


def render_pdf(markdown: str) -> tuple[bytes, Layout]:
    """Lay out and draw the markdown; returns the PDF bytes and the layout used."""
    pdf = _new_document()
    layout = layout_markdown(markdown, _measurer(pdf))

    pdf.set_text_color(*TEXT_COLOR)
    pdf.set_draw_color(*RULE_COLOR)
    pdf.set_line_width(RULE_THICKNESS)

    for page in range(1, layout.page_count + 1):
        pdf.add_page()
        for rule in layout.rules:
            if rule.page == page:
                pdf.line(PAGE_MARGIN, rule.y, PAGE_WIDTH - PAGE_MARGIN, rule.y)
        for line in layout.lines:
            if line.page == page:
                pdf.set_font(FONT_FAMILY, style="B" if line.bold else "", size=line.size)
                pdf.text(PAGE_MARGIN, line.y, line.text)

    return bytes(pdf.output()), layout


def resume_file_stem(name: str, company: str, title: str, url: str = "") -> str:
    """Candidate, employer and title joined with underscores.

    With a posting URL, a short hash of it is appended so two postings that
    share employer and title (say, in different cities) get separate files.
    """
    stem = "_".join(re.sub(r"\s+", "_", part.strip()) for part in (name, company, title))
    if not url:
        return stem
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:URL_HASH_CHARS]
    return f"{stem[: MAX_STEM_CHARS - URL_HASH_CHARS - 1]}_{digest}"


def sanitize_file_stem(stem: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "_", stem)[:MAX_STEM_CHARS]


def write_resume_pdf(markdown: str, file_stem: str, output_dir: str | Path) -> RenderedFile:
    """Render the resume and write it as ``<sanitized stem>.pdf`` in output_dir.

    Raises:
        RenderError: if drawing or writing the file fails.
    """
    file_name = f"{sanitize_file_stem(file_stem)}.pdf"
    path = Path(output_dir).resolve() / file_name

    try:
        content, layout = render_pdf(markdown)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except (OSError, FPDFException) as e:
        raise RenderError(f"Could not render {file_name}: {e}") from e

    logger.info("PDF generated: %s (%d bytes, %d pages)", path, len(content), layout.page_count)
    return RenderedFile(path=path, file_name=file_name, content=content, page_count=layout.page_count)
