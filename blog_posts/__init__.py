"""Front-matter blog post toolkit.

Parses post documents, checks them against the front-matter schema the
site generator expects, lists and exports them, and renders PDF books.
"""

from .models import Post, CodeBlock, FRONT_MATTER_SCHEMA, PAPER_SIZES
from .utils import debug_print, set_debug, parse_date
from .frontmatter import FrontMatterError, split_front_matter, decode_front_matter, parse_post, load_post
from .body_parser import BodyParser, Link, parse_body, extract_links
from .validation import Issue, is_well_formed_link, validate_post, validate_posts, check_urls
from .storage import load_posts, sort_posts, filter_posts, save_index, load_index
from .renderer import BookRenderer

__all__ = [
    "Post",
    "CodeBlock",
    "FRONT_MATTER_SCHEMA",
    "PAPER_SIZES",
    "debug_print",
    "set_debug",
    "parse_date",
    "FrontMatterError",
    "split_front_matter",
    "decode_front_matter",
    "parse_post",
    "load_post",
    "BodyParser",
    "Link",
    "parse_body",
    "extract_links",
    "Issue",
    "is_well_formed_link",
    "validate_post",
    "validate_posts",
    "check_urls",
    "load_posts",
    "sort_posts",
    "filter_posts",
    "save_index",
    "load_index",
    "BookRenderer",
]
