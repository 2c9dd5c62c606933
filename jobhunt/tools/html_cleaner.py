"""HTML cleaning utility for job descriptions."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

_BLOCK_TAGS = ["p", "li", "br", "div", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6", "tr"]


def clean_html(raw_html: str | None) -> str:
    """Strip HTML tags and normalize whitespace from a job description.

    Block-level tags become line breaks so bullet lists in the posting stay
    readable in prompts; runs of spaces collapse to one.
    """
    if not raw_html:
        return ""

    if "<" not in raw_html:
        text = raw_html
    else:
        soup = BeautifulSoup(raw_html, "html.parser")

        # Remove script and style elements
        for element in soup(["script", "style", "nav", "footer", "header"]):
            element.decompose()
        for block in soup.find_all(_BLOCK_TAGS):
            block.insert_after("\n")

        text = soup.get_text()

    # Normalize whitespace, keep at most one blank line
    text = text.replace("\xa0", " ")
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)

    return text.strip()
