"""Front-matter splitting and decoding for post documents."""

import os

import yaml

from .body_parser import parse_body
from .models import Post
from .utils import debug_print, parse_date

DELIMITER = "---"
_CLOSERS = ("---", "...")


class FrontMatterError(ValueError):
    """A document whose front matter cannot be split or decoded."""

    def __init__(self, message, source="<string>"):
        super().__init__(f"{source}: {message}")
        self.source = source


class _FrontMatterLoader(yaml.SafeLoader):
    """SafeLoader that leaves timestamps as strings.

    Dates are parsed by parse_date so that an impossible calendar date is
    reported by validation instead of failing the whole document.
    """


def _construct_timestamp(loader, node):
    return loader.construct_scalar(node)


_FrontMatterLoader.add_constructor("tag:yaml.org,2002:timestamp", _construct_timestamp)


def split_front_matter(text, source="<string>"):
    """Split a document into (front matter block, body).

    The block is None when the document does not open with a delimiter line.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != DELIMITER:
        return None, text

    for i in range(1, len(lines)):
        if lines[i].rstrip() in _CLOSERS:
            return "".join(lines[1:i]), "".join(lines[i + 1:])
    raise FrontMatterError("front matter is not closed", source)


def decode_front_matter(block, source="<string>"):
    """Decode a front matter block into a dict."""
    if block is None or not block.strip():
        return {}
    try:
        data = yaml.load(block, Loader=_FrontMatterLoader)
    except yaml.YAMLError as e:
        raise FrontMatterError(f"invalid YAML: {e}", source) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontMatterError(
            f"front matter must be a mapping, got {type(data).__name__}", source)
    return data


def _coerce_tags(value):
    if isinstance(value, str):
        return frozenset(value.split())
    if isinstance(value, (list, tuple, set)):
        return frozenset(str(tag) for tag in value if tag is not None)
    return frozenset()


def _optional_str(value):
    return value if isinstance(value, str) else None


def parse_post(text, source="<string>"):
    """Build a Post from document text.

    Missing or malformed values are kept as None and left for validation.
    """
    block, body = split_front_matter(text, source)
    metadata = decode_front_matter(block, source)

    try:
        date = parse_date(metadata.get("date"))
    except ValueError:
        date = None

    title = metadata.get("title")
    post = Post(
        title=title if isinstance(title, str) else ("" if title is None else str(title)),
        date=date,
        source=source,
        layout=_optional_str(metadata.get("layout")),
        description=_optional_str(metadata.get("description")),
        image=_optional_str(metadata.get("img")),
        tags=_coerce_tags(metadata.get("tags")),
        body=body,
        content=parse_body(body),
        metadata=metadata,
    )
    debug_print(f"Parsed {source}: {post.title!r} ({len(post.content)} blocks)")
    return post


def load_post(path, root=None):
    """Load a Post from a file. source is the path relative to root."""
    source = os.path.relpath(path, root) if root else path
    source = source.replace(os.sep, "/")
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_post(text, source)
