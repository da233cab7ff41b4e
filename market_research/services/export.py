from __future__ import annotations

import re
from datetime import date

from bs4 import BeautifulSoup

from market_research.models.research import ResearchMode, ResearchResult

# Applied in order; anything left afterwards is stripped as a tag.
_TAG_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("<h2>", "## "),
    ("</h2>", "\n\n"),
    ("<h3>", "### "),
    ("</h3>", "\n\n"),
    ("<p>", ""),
    ("</p>", "\n\n"),
    ("<ul>", ""),
    ("</ul>", "\n"),
    ("<li>", "- "),
    ("</li>", "\n"),
)

MODE_LABELS = {
    ResearchMode.QUICK: "Quick Research",
    ResearchMode.FULL: "Full In-depth Research",
}


def html_to_text(html: str) -> str:
    text = html
    for tag, replacement in _TAG_REPLACEMENTS:
        text = text.replace(tag, replacement)
    text = BeautifulSoup(text, "html.parser").get_text()
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def to_plain_text(result: ResearchResult) -> str:
    """Plain-text approximation of the HTML report body."""
    return html_to_text(result.full_report)


def to_markdown_document(
    result: ResearchResult,
    question: str,
    mode: ResearchMode | str,
    *,
    generated: date | None = None,
) -> str:
    """Render a standalone markdown document for download or export."""
    mode = ResearchMode(mode)
    lines = [
        "# Market Research Report",
        "",
        f"**Query:** {question}",
        f"**Mode:** {MODE_LABELS[mode]}",
        f"**Generated:** {(generated or date.today()).isoformat()}",
        "",
        "## Executive Summary",
        "",
        result.summary,
        "",
        "## Detailed Analysis",
        "",
        to_plain_text(result),
        "",
    ]
    if result.sources:
        lines.extend(["## Sources", ""])
        for source in result.sources:
            lines.append(f"- **{source.title}** - {source.domain} ({source.date})")
        lines.append("")
    return "\n".join(lines)
