"""Tests for the resume PDF renderer."""

from __future__ import annotations

from pathlib import Path

import pytest

from jobhunt.errors import RenderError
from jobhunt.report.pdf import (
    BODY_SIZE,
    BULLET,
    HEADING_SIZE,
    LINE_HEIGHT,
    PAGE_HEIGHT,
    PAGE_MARGIN,
    layout_markdown,
    render_pdf,
    resume_file_stem,
    sanitize_file_stem,
    strip_inline_markup,
    to_core_charset,
    wrap_text,
    write_resume_pdf,
)

RESUME = """# Ada Lovelace
ada@example.com | https://linkedin.com/in/ada

---

## Experience
### Senior Software Engineer | Acme Inc.
- Built **real-time** data pipeline processing 2M+ events/day using `Kafka`
- Reduced API response times by 60% through *query optimization*
"""


def char_measure(text: str, bold: bool, size: float) -> float:
    """Monospace stand-in: every character is half the font size wide."""
    return len(text) * size * 0.5


class TestLayout:
    """Test suite for layout_markdown."""

    def test_heading_styles(self) -> None:
        layout = layout_markdown(RESUME, char_measure)
        first = layout.lines[0]
        assert first.text == "Ada Lovelace"
        assert first.size == HEADING_SIZE
        assert first.bold is True
        assert first.page == 1

    def test_bullets_and_inline_markup(self) -> None:
        lines = layout_markdown(RESUME, char_measure).text_lines()
        assert f"  {BULLET}  Built real-time data pipeline processing 2M+ events/day using Kafka" in lines
        assert not any("**" in line or "`" in line for line in lines)

    def test_rule_recorded(self) -> None:
        layout = layout_markdown(RESUME, char_measure)
        assert len(layout.rules) == 1
        assert layout.rules[0].page == 1

    def test_long_document_paginates(self) -> None:
        markdown = "\n".join(f"Line {i}" for i in range(120))
        layout = layout_markdown(markdown, char_measure)
        assert layout.page_count > 1
        bottom = PAGE_HEIGHT - PAGE_MARGIN
        assert all(PAGE_MARGIN <= line.y <= bottom for line in layout.lines)
        assert layout.lines[-1].page == layout.page_count

    def test_lines_per_page(self) -> None:
        markdown = "\n".join(f"Line {i}" for i in range(100))
        layout = layout_markdown(markdown, char_measure)
        on_first = [line for line in layout.lines if line.page == 1]
        expected = int((PAGE_HEIGHT - 2 * PAGE_MARGIN - LINE_HEIGHT) // LINE_HEIGHT) + 1
        assert len(on_first) == expected

    def test_layout_is_deterministic(self) -> None:
        assert layout_markdown(RESUME, char_measure) == layout_markdown(RESUME, char_measure)


class TestWrapText:
    def test_wraps_at_width(self) -> None:
        lines = wrap_text("aaaa bbbb cccc", False, BODY_SIZE, 50, char_measure)
        assert lines == ["aaaa bbbb", "cccc"]

    def test_long_word_gets_own_line(self) -> None:
        lines = wrap_text("a " + "x" * 40 + " b", False, BODY_SIZE, 50, char_measure)
        assert lines == ["a", "x" * 40, "b"]


class TestTextHelpers:
    def test_strip_inline_markup(self) -> None:
        assert strip_inline_markup("**Bold** and *it* and `code`") == "Bold and it and code"

    def test_core_charset(self) -> None:
        assert to_core_charset("• 2020–2022 “quoted” →") == f"{BULLET} 2020-2022 \"quoted\" ->"

    def test_unencodable_replaced(self) -> None:
        assert to_core_charset("ok 日本") == "ok ??"


class TestRenderPdf:
    def test_produces_pdf_bytes(self) -> None:
        content, layout = render_pdf(RESUME)
        assert content.startswith(b"%PDF")
        assert layout.page_count == 1

    def test_same_markdown_same_layout(self) -> None:
        _, first = render_pdf(RESUME)
        _, second = render_pdf(RESUME)
        assert first == second
        assert first.text_lines() == second.text_lines()


class TestFileNaming:
    def test_resume_file_stem(self) -> None:
        assert resume_file_stem("Ada Lovelace", "Acme Inc.", "Senior Engineer") == "Ada_Lovelace_Acme_Inc._Senior_Engineer"

    def test_url_suffix_separates_same_title(self) -> None:
        first = resume_file_stem("Ada Lovelace", "Acme", "Engineer", url="https://indeed.com/viewjob?jk=1")
        second = resume_file_stem("Ada Lovelace", "Acme", "Engineer", url="https://indeed.com/viewjob?jk=2")
        assert first.startswith("Ada_Lovelace_Acme_Engineer_")
        assert len(first) == len("Ada_Lovelace_Acme_Engineer_") + 8
        assert first != second
        assert first == resume_file_stem("Ada Lovelace", "Acme", "Engineer", url="https://indeed.com/viewjob?jk=1")

    def test_url_suffix_survives_truncation(self) -> None:
        stem = resume_file_stem("Ada", "A" * 300, "Engineer", url="https://x/1")
        assert len(stem) == 150
        assert sanitize_file_stem(stem) == stem
        assert stem[-9] == "_"

    def test_sanitize(self) -> None:
        assert sanitize_file_stem("Ada_Acme, Inc./Sr. Eng (Remote)") == "Ada_Acme__Inc__Sr__Eng__Remote_"

    def test_sanitize_truncates(self) -> None:
        assert len(sanitize_file_stem("x" * 400)) == 150

    def test_write_resume_pdf(self, tmp_path: Path) -> None:
        stem = resume_file_stem("Ada Lovelace", "Acme", "Engineer")
        rendered = write_resume_pdf(RESUME, stem, tmp_path / "out")
        assert rendered.file_name == "Ada_Lovelace_Acme_Engineer.pdf"
        assert rendered.path.exists()
        assert rendered.path.read_bytes() == rendered.content
        assert rendered.path.is_absolute()

    def test_write_failure_raises_render_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way")
        with pytest.raises(RenderError):
            write_resume_pdf(RESUME, "stem", blocker)
