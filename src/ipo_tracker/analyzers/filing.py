"""Reduce SEC filing HTML to the parts worth sending to an LLM."""

from __future__ import annotations

import html
import logging
import re
from typing import ClassVar

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

MAX_SUMMARY_CHARS = 15_000


class FilingSummarizer:
    """Extracts financial tables and key narrative sections from a filing.

    The output is a plain-text digest: up to `max_tables` tables whose text
    mentions financial vocabulary, followed by a snippet after each
    recognised section heading, truncated to `max_chars` overall.
    """

    FINANCIAL_KEYWORDS: ClassVar[tuple[str, ...]] = (
        "revenue", "income", "assets", "liabilities", "equity",
        "cash flow", "stockholders", "earnings", "net income",
        "operating income", "total assets", "current assets",
        "accounts receivable", "inventory", "property", "debt",
    )

    SECTION_HEADINGS: ClassVar[tuple[str, ...]] = (
        "CONSOLIDATED STATEMENTS OF OPERATIONS",
        "CONSOLIDATED BALANCE SHEETS",
        "CONSOLIDATED STATEMENTS OF CASH FLOWS",
        "CONSOLIDATED STATEMENTS OF STOCKHOLDERS",
        "BUSINESS",
        "RISK FACTORS",
        "RESULTS OF OPERATIONS",
        "FINANCIAL CONDITION",
        "LIQUIDITY AND CAPITAL RESOURCES",
    )

    def __init__(
        self,
        max_chars: int = MAX_SUMMARY_CHARS,
        max_tables: int = 3,
        table_chars: int = 1000,
        section_window: int = 5000,
        section_chars: int = 2000,
    ) -> None:
        self.max_chars = max_chars
        self.max_tables = max_tables
        self.table_chars = table_chars
        self.section_window = section_window
        self.section_chars = section_chars

    def summarize(self, raw_html: str) -> str:
        if not raw_html or not raw_html.strip():
            return ""

        soup = BeautifulSoup(raw_html, "lxml")
        for tag in soup.find_all(["script", "style"]):
            tag.decompose()
        self._remove_xbrl(soup)

        tables = self.extract_financial_tables(soup)
        text = self._normalize(soup.get_text(separator=" "))
        sections = self.extract_sections(text)

        parts = ["SEC FILING ANALYSIS CONTENT:\n"]
        if tables:
            parts.append("FINANCIAL TABLES:")
            for i, table in enumerate(tables[: self.max_tables], start=1):
                parts.append(f"Table {i}: {table[: self.table_chars]}\n")
        if sections:
            parts.append("KEY SECTIONS:")
            for heading, content in sections:
                parts.append(f"{heading}:\n{content}\n")

        summary = "\n".join(parts)
        logger.debug(
            "Summarized filing: %d tables, %d sections, %d chars",
            len(tables), len(sections), len(summary),
        )
        return summary[: self.max_chars]

    def extract_financial_tables(self, soup: BeautifulSoup) -> list[str]:
        """Flattened text of every table mentioning financial vocabulary."""
        tables = []
        for table in soup.find_all("table"):
            text = self._normalize(table.get_text(separator=" "))
            if self.contains_financial_keywords(text):
                tables.append(text)
        return tables

    def extract_sections(self, text: str) -> list[tuple[str, str]]:
        """First occurrence of each section heading with the text that follows."""
        sections = []
        for heading in self.SECTION_HEADINGS:
            m = re.search(
                rf"({re.escape(heading)}.{{0,{self.section_window}}})",
                text,
                re.IGNORECASE | re.DOTALL,
            )
            if m:
                sections.append((heading, m.group(1)[: self.section_chars]))
        return sections

    def contains_financial_keywords(self, text: str) -> bool:
        lowered = text.lower()
        return any(k in lowered for k in self.FINANCIAL_KEYWORDS)

    @staticmethod
    def _normalize(text: str) -> str:
        return re.sub(r"\s+", " ", html.unescape(text)).strip()

    @staticmethod
    def _remove_xbrl(soup: BeautifulSoup) -> None:
        """Unwrap inline XBRL tags, keeping the figures they wrap."""
        for tag in soup.find_all(re.compile(r"^(?:ix|xbrli|xbrl):", re.IGNORECASE)):
            tag.unwrap()


def summarize_filing_html(raw_html: str, max_chars: int = MAX_SUMMARY_CHARS) -> str:
    """Convenience wrapper around FilingSummarizer.summarize."""
    return FilingSummarizer(max_chars=max_chars).summarize(raw_html)
