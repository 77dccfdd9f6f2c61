"""Data models and constants for front-matter posts."""

import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, List, Optional

from reportlab.lib.pagesizes import letter, A4, legal, A3, A5, TABLOID

PAPER_SIZES = {
    "letter": letter,
    "a4": A4,
    "legal": legal,
    "a3": A3,
    "a5": A5,
    "tabloid": TABLOID,
}

# key -> (expected type, required)
FRONT_MATTER_SCHEMA = {
    "layout": ("string", True),
    "title": ("string", True),
    "date": ("date", True),
    "description": ("string", False),
    "img": ("path", False),
    "tags": ("list of strings", False),
}

POST_EXTENSIONS = (".md", ".markdown")

_FILENAME_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})-(.+)$')


@dataclass(frozen=True)
class CodeBlock:
    """A fenced, language-tagged literal block. Never executed."""
    language: str
    text: str
    line: int = 1
    closed: bool = True


@dataclass(frozen=True)
class Post:
    """A single authored post: front matter plus Markdown body."""
    title: str
    date: Optional[datetime]
    source: str = "<string>"
    layout: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
    body: str = ""
    # content is a list of interleaved blocks:
    #   ("text", "paragraph text...")
    #   ("code", CodeBlock(...))
    content: List[tuple] = field(default_factory=list, compare=False)
    metadata: dict = field(default_factory=dict, compare=False)

    @property
    def filename_date(self):
        """Date encoded in a ``YYYY-MM-DD-slug.md`` file name, or None."""
        m = _FILENAME_DATE_RE.match(self._stem)
        if not m:
            return None
        try:
            return datetime(int(m.group(1)), int(m.group(2)), int(m.group(3))).date()
        except ValueError:
            return None

    @property
    def slug(self):
        m = _FILENAME_DATE_RE.match(self._stem)
        stem = m.group(4) if m else self._stem
        return re.sub(r'[^a-z0-9]+', '-', stem.lower()).strip('-')

    @property
    def permalink(self):
        """Default generator URL: /YYYY/MM/DD/slug.html."""
        if self.date is None:
            return None
        return f"{self.date.strftime('/%Y/%m/%d')}/{self.slug}.html"

    @property
    def code_blocks(self):
        return [value for kind, value in self.content if kind == "code"]

    @property
    def _stem(self):
        return os.path.splitext(os.path.basename(self.source))[0]
