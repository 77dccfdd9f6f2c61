"""Content-integrity checks for posts."""

import os
import re
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from urllib.parse import urlsplit

import requests
from PIL import Image, UnidentifiedImageError

from .body_parser import extract_links
from .models import FRONT_MATTER_SCHEMA
from .utils import debug_print, parse_date

ERROR = "error"
WARNING = "warning"

USER_AGENT = "Mozilla/5.0 (compatible; blog-posts-linkcheck/1.0)"

# Liquid expressions are resolved by the site generator.
_TEMPLATE_RE = re.compile(r'\{\{.*?\}\}|\{%.*?%\}')
_SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*:')

VECTOR_EXTENSIONS = (".svg", ".svgz", ".pdf")


@dataclass(frozen=True)
class Issue:
    source: str
    field: str
    message: str
    severity: str = ERROR

    def __str__(self):
        return f"{self.source}: [{self.severity}] {self.field}: {self.message}"


def is_well_formed_link(target):
    """Return True if a link target is syntactically well-formed."""
    if not target or not target.strip():
        return False
    if _TEMPLATE_RE.search(target):
        return not any(c.isspace() for c in _TEMPLATE_RE.sub("", target))
    if any(c.isspace() for c in target):
        return False
    try:
        parts = urlsplit(target)
        parts.port  # raises ValueError on a bad port
    except ValueError:
        return False

    if _SCHEME_RE.match(target):
        scheme = parts.scheme.lower()
        if scheme in ("http", "https", "ftp"):
            return bool(parts.hostname)
        if scheme == "mailto":
            local, _, domain = parts.path.partition("@")
            return bool(local and domain)
        return bool(parts.netloc or parts.path)

    if target.startswith("//"):
        return bool(parts.hostname)
    if target == "#":
        return False
    return True


def _check_required(post, metadata):
    issues = []
    for key, (_, required) in FRONT_MATTER_SCHEMA.items():
        if not required:
            continue
        value = metadata.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            issues.append(Issue(post.source, key, "missing or empty"))
    return issues


def _check_types(post, metadata):
    issues = []
    for key in ("layout", "title", "description", "img"):
        value = metadata.get(key)
        if value is not None and not isinstance(value, str):
            issues.append(Issue(
                post.source, key, f"expected a string, got {type(value).__name__}"))

    tags = metadata.get("tags")
    if tags is not None and not isinstance(tags, str):
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            issues.append(Issue(post.source, "tags", "expected a list of strings"))

    for key in metadata:
        if key not in FRONT_MATTER_SCHEMA:
            issues.append(Issue(post.source, key, "unknown front matter key", WARNING))
    return issues


def _check_date(post, metadata):
    value = metadata.get("date")
    if value is None or (isinstance(value, str) and not value.strip()):
        return []
    try:
        parsed = parse_date(value)
    except ValueError:
        return [Issue(post.source, "date", f"not a valid calendar date: {value!r}")]

    from_name = post.filename_date
    if from_name is not None and from_name != parsed.date():
        return [Issue(
            post.source, "date",
            f"file name says {from_name.isoformat()} but date is {parsed.date().isoformat()}",
            WARNING,
        )]
    return []


def resolve_asset(target, site_root):
    """Local path of a site asset reference such as /assets/img/a.png."""
    path = target.split("#", 1)[0].split("?", 1)[0]
    return os.path.join(site_root, path.lstrip("/"))


def _check_image(post, site_root):
    if post.image is None:
        return []
    if not is_well_formed_link(post.image):
        return [Issue(post.source, "img", f"malformed path: {post.image!r}")]
    if site_root is None or _TEMPLATE_RE.search(post.image) or _SCHEME_RE.match(post.image):
        return []

    path = resolve_asset(post.image, site_root)
    if not os.path.isfile(path):
        return [Issue(post.source, "img", f"file not found: {post.image}")]
    if path.lower().endswith(VECTOR_EXTENSIONS):
        # Pillow cannot decode vector formats
        return []
    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError) as e:
        return [Issue(post.source, "img", f"not a readable image: {e}")]
    return []


def _check_body(post):
    issues = []
    for link in extract_links(post.body):
        if not is_well_formed_link(link.target):
            kind = "image" if link.image else "link"
            issues.append(Issue(
                post.source, "body", f"line {link.line}: malformed {kind} target {link.target!r}"))
    for block in post.code_blocks:
        if not block.closed:
            issues.append(Issue(
                post.source, "body", f"line {block.line}: code fence is never closed", WARNING))
    return issues


def validate_post(post, site_root=None):
    """Return the list of Issues found in a single post."""
    metadata = post.metadata
    issues = []
    issues.extend(_check_required(post, metadata))
    issues.extend(_check_types(post, metadata))
    issues.extend(_check_date(post, metadata))
    issues.extend(_check_image(post, site_root))
    issues.extend(_check_body(post))
    debug_print(f"Validated {post.source}: {len(issues)} issue(s)")
    return issues


def validate_posts(posts, site_root=None):
    """Validate every post plus checks that span the collection."""
    issues = []
    for post in posts:
        issues.extend(validate_post(post, site_root))

    by_permalink = defaultdict(list)
    for post in posts:
        if post.permalink:
            by_permalink[post.permalink].append(post.source)
    for permalink, sources in sorted(by_permalink.items()):
        if len(sources) > 1:
            for source in sources[1:]:
                issues.append(Issue(
                    source, "permalink",
                    f"{permalink} is also used by {sources[0]}", WARNING))
    return issues


def has_errors(issues):
    return any(issue.severity == ERROR for issue in issues)


def _check_url(url, timeout):
    headers = {"User-Agent": USER_AGENT}
    try:
        # Try HEAD first for speed
        response = requests.head(url, headers=headers, timeout=timeout, allow_redirects=True)
        if response.status_code >= 400:
            # Fallback to GET for sites that block HEAD
            response = requests.get(url, headers=headers, timeout=timeout, allow_redirects=True)
        return url, response.status_code
    except requests.RequestException as e:
        return url, str(e)


def check_urls(urls, timeout=10, workers=8):
    """Probe external http(s) URLs in parallel.

    Returns:
        dict mapping url -> HTTP status code (int) or error message (str).
    """
    urls = sorted({u for u in urls if u.lower().startswith(("http://", "https://"))})
    if not urls:
        return {}
    print(f"Checking {len(urls)} unique URLs...")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(lambda u: _check_url(u, timeout), urls))
    return dict(results)


def collect_urls(posts):
    """External link targets of all posts, keyed by url -> list of sources."""
    found = defaultdict(list)
    for post in posts:
        for link in extract_links(post.body):
            if link.target.lower().startswith(("http://", "https://")):
                found[link.target].append(post.source)
    return found


def online_issues(posts, timeout=10, workers=8):
    """Issues for external links that do not answer with a success status."""
    found = collect_urls(posts)
    results = check_urls(found, timeout=timeout, workers=workers)
    issues = []
    for url, status in results.items():
        if isinstance(status, int) and status < 400:
            continue
        for source in found[url]:
            issues.append(Issue(source, "body", f"unreachable link {url} ({status})"))
    return issues
