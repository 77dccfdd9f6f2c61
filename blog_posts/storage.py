"""Load post directories, order listings, and save/load post indexes (JSON, YAML, CSV)."""

import csv
import json
import os
from datetime import datetime

import yaml

from .body_parser import parse_body
from .frontmatter import FrontMatterError, load_post
from .models import POST_EXTENSIONS, Post
from .utils import debug_print, sort_timestamp


def find_post_files(directory):
    """Return every post file below directory, in sorted path order."""
    found = []
    for root, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in sorted(files):
            if name.lower().endswith(POST_EXTENSIONS):
                found.append(os.path.join(root, name))
    return sorted(found)


def load_posts(directory):
    """Load every post below directory.

    Returns:
        (posts, failures) where failures is a list of FrontMatterError for
        documents that could not be split or decoded.
    """
    posts = []
    failures = []
    for path in find_post_files(directory):
        try:
            posts.append(load_post(path, root=directory))
        except FrontMatterError as e:
            failures.append(e)
        except UnicodeDecodeError as e:
            source = os.path.relpath(path, directory).replace(os.sep, "/")
            failures.append(FrontMatterError(f"not UTF-8 text: {e}", source))
    debug_print(f"Loaded {len(posts)} posts from {directory}, {len(failures)} failure(s)")
    return posts, failures


def sort_posts(posts):
    """Order posts for a listing: date descending, ties by source ascending."""
    undated = [p.source for p in posts if p.date is None]
    if undated:
        raise ValueError(f"posts without a valid date: {', '.join(undated)}")
    # sort is stable, so the source order survives among equal dates
    by_source = sorted(posts, key=lambda p: p.source)
    return sorted(by_source, key=lambda p: sort_timestamp(p.date), reverse=True)


def filter_posts(posts, tag=None, since=None, until=None):
    """Keep posts carrying tag and dated within [since, until] (dates inclusive)."""
    result = []
    for post in posts:
        if tag is not None and tag not in post.tags:
            continue
        if post.date is not None:
            day = post.date.date()
            if since is not None and day < since:
                continue
            if until is not None and day > until:
                continue
        elif since is not None or until is not None:
            continue
        result.append(post)
    return result


def post_to_dict(post):
    return {
        "source": post.source,
        "layout": post.layout,
        "title": post.title,
        "date": post.date.isoformat() if post.date else None,
        "description": post.description,
        "img": post.image,
        "tags": sorted(post.tags),
        "permalink": post.permalink,
        "body": post.body,
    }


def save_index(posts, path):
    """Save a post index. Format inferred from extension (.json, .yaml/.yml, .csv)."""
    ext = os.path.splitext(path)[1].lower()

    if ext == ".json":
        with open(path, "w", encoding="utf-8") as f:
            json.dump([post_to_dict(p) for p in posts], f, indent=2, ensure_ascii=False)
    elif ext in (".yaml", ".yml"):
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump([post_to_dict(p) for p in posts], f,
                           default_flow_style=False, allow_unicode=True, sort_keys=False)
    elif ext == ".csv":
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["source", "date", "title", "description", "img", "tags", "permalink"])
            for post in posts:
                writer.writerow([
                    post.source,
                    post.date.isoformat() if post.date else "",
                    post.title,
                    post.description or "",
                    post.image or "",
                    " ".join(sorted(post.tags)),
                    post.permalink or "",
                ])
    else:
        raise ValueError(f"Unsupported file extension '{ext}'. Use .json, .yaml, .yml, or .csv.")

    print(f"Saved {len(posts)} posts to {path}")


def load_index(path):
    """Load posts from a JSON or YAML index written by save_index."""
    ext = os.path.splitext(path)[1].lower()

    if ext == ".json":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    elif ext in (".yaml", ".yml"):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported file extension '{ext}' for loading. Use .json, .yaml, or .yml.")

    posts = []
    for item in data or []:
        body = item.get("body") or ""
        metadata = {k: item[k] for k in ("layout", "title", "date", "description", "img", "tags")
                    if item.get(k) is not None}
        posts.append(Post(
            title=item["title"],
            date=datetime.fromisoformat(item["date"]) if item.get("date") else None,
            source=item.get("source", "<string>"),
            layout=item.get("layout"),
            description=item.get("description"),
            image=item.get("img"),
            tags=frozenset(item.get("tags") or []),
            body=body,
            content=parse_body(body),
            metadata=metadata,
        ))

    print(f"Loaded {len(posts)} posts from {path}")
    return posts
