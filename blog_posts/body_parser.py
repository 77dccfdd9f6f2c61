"""Markdown body parsing: fenced code blocks and link targets.

Only the structure the site generator relies on is recognised. Everything
inside a fence is an opaque payload and is passed through verbatim.
"""

import re
from dataclasses import dataclass

from .models import CodeBlock

_FENCE_RE = re.compile(r'^ {0,3}(`{3,}|~{3,})[ \t]*([^\s`]*)[^`]*$')

_INLINE_CODE_RE = re.compile(r'(`+)(?:.+?)\1')
# destination "title", destination 'title' or destination (title)
_TITLE_RE = re.compile(r'^(.*?)\s+("[^"]*"|\'[^\']*\'|\([^)]*\))$', re.DOTALL)
_AUTOLINK_RE = re.compile(r'<([A-Za-z][A-Za-z0-9+.-]{1,31}:[^<>\s]*)>')
_REFERENCE_DEF_RE = re.compile(r'^ {0,3}\[[^\]]+\]:\s*(\S+)')


@dataclass(frozen=True)
class Link:
    target: str
    line: int
    image: bool = False


def _closes_fence(line, char, length):
    """True if line is a closing fence for an opener of char * length."""
    stripped = line.strip()
    return (bool(stripped) and len(line) - len(line.lstrip(" ")) <= 3
            and set(stripped) == {char} and len(stripped) >= length)


class BodyParser:
    """Split a Markdown body into interleaved text and code blocks."""

    def __init__(self):
        self.blocks = []          # list of ("text", str) | ("code", CodeBlock)
        self._text_buf = []
        self._fence = None        # (char, length, language, start line)
        self._code_buf = []

    def _flush_text(self):
        text = "\n".join(self._text_buf).strip("\n")
        if text.strip():
            self.blocks.append(("text", text))
        self._text_buf = []

    def _close_fence(self, closed):
        _, _, language, start = self._fence
        self.blocks.append(("code", CodeBlock(
            language=language,
            text="\n".join(self._code_buf),
            line=start,
            closed=closed,
        )))
        self._fence = None
        self._code_buf = []

    def feed_line(self, line, lineno):
        if self._fence is None:
            m = _FENCE_RE.match(line)
            if m:
                marker, language = m.group(1), m.group(2)
                self._flush_text()
                self._fence = (marker[0], len(marker), language, lineno)
            else:
                self._text_buf.append(line)
            return

        if _closes_fence(line, self._fence[0], self._fence[1]):
            self._close_fence(closed=True)
        else:
            self._code_buf.append(line)

    def feed(self, body):
        for lineno, line in enumerate(body.splitlines(), 1):
            self.feed_line(line, lineno)

    def get_blocks(self):
        """Return the blocks, closing a fence left open at end of input."""
        if self._fence is not None:
            self._close_fence(closed=False)
        self._flush_text()
        return self.blocks


def parse_body(body):
    """Parse a body and return list of ("text", str) / ("code", CodeBlock) blocks."""
    parser = BodyParser()
    parser.feed(body)
    return parser.get_blocks()


def _text_lines(body):
    """Yield (lineno, line) for lines outside fenced code."""
    fence = None
    for lineno, line in enumerate(body.splitlines(), 1):
        if fence is None:
            m = _FENCE_RE.match(line)
            if m:
                fence = m.group(1)
                continue
            yield lineno, line
        elif _closes_fence(line, fence[0], len(fence)):
            fence = None


def _match_bracket(text, start, open_char, close_char):
    """Index of the close_char balancing text[start], or -1."""
    depth = 0
    i = start
    while i < len(text):
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == open_char:
            depth += 1
        elif c == close_char:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _split_destination(raw):
    """Target of a link destination, without <> and any trailing title."""
    raw = raw.strip()
    if raw.startswith("<"):
        end = raw.find(">")
        if end != -1:
            return raw[1:end]
    m = _TITLE_RE.match(raw)
    return m.group(1) if m else raw


def _scan_links(text, offset=0):
    """Return (target, image, start, end) for inline links and images.

    Links nested in link text (badges) come before the link around them.
    """
    found = []
    i = 0
    while i < len(text):
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c != "[":
            i += 1
            continue
        close = _match_bracket(text, i, "[", "]")
        if close == -1 or text[close + 1:close + 2] != "(":
            i += 1
            continue
        end = _match_bracket(text, close + 1, "(", ")")
        if end == -1:
            i += 1
            continue
        image = i > 0 and text[i - 1] == "!"
        found.extend(_scan_links(text[i + 1:close], offset + i + 1))
        start = i - 1 if image else i
        found.append((_split_destination(text[close + 2:end]), image,
                      offset + start, offset + end + 1))
        i = end + 1
    return found


def extract_links(body):
    """Return every link target in the body, skipping code.

    Covers inline links and images, autolinks and reference definitions.
    """
    links = []
    for lineno, line in _text_lines(body):
        ref = _REFERENCE_DEF_RE.match(line)
        if ref:
            links.append(Link(ref.group(1).strip("<>"), lineno))
            continue
        line = _INLINE_CODE_RE.sub("", line)
        found = _scan_links(line)
        for target, image, start, end in found:
            links.append(Link(target, lineno, image=image))
            line = line[:start] + " " * (end - start) + line[end:]
        for m in _AUTOLINK_RE.finditer(line):
            links.append(Link(m.group(1), lineno))
    return links
