"""
Front-matter post toolkit

Check, list, export and print the posts of a static site.

Usage:
    # Validate every post; exit status 1 on any error
    blog-posts check _posts --site-root .

    # Also probe external links
    blog-posts check _posts --online --timeout 5

    # Newest first, optionally filtered
    blog-posts list _posts --tag java --since 2021-01-01

    # Write an index of all posts
    blog-posts export _posts --output posts.json

    # PDF book of the listing
    blog-posts book _posts --title "Java Notes" --output book.pdf

Environment:
    BLOG_POSTS_DIR        default posts directory (default: _posts)
    BLOG_POSTS_SITE_ROOT  default site root for assets (default: parent of the posts directory)
"""

import argparse
import os
from datetime import datetime

from .renderer import BookRenderer
from .storage import filter_posts, load_posts, save_index, sort_posts
from .utils import debug_print, set_debug
from .validation import has_errors, online_issues, validate_posts
from .models import PAPER_SIZES


def _date_arg(value):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="blog-posts",
        description="Check, list, export and print front-matter blog posts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--debug", action="store_true", default=False,
        help="Print debug output.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_directory(p):
        p.add_argument(
            "directory", nargs="?", default=os.environ.get("BLOG_POSTS_DIR", "_posts"),
            help="Posts directory (default: $BLOG_POSTS_DIR or _posts).",
        )

    def add_site_root(p):
        p.add_argument(
            "--site-root", default=os.environ.get("BLOG_POSTS_SITE_ROOT"),
            help="Site root that asset paths resolve against "
                 "(default: $BLOG_POSTS_SITE_ROOT or the parent of the posts directory).",
        )

    check = sub.add_parser("check", help="Validate front matter and links.")
    add_directory(check)
    add_site_root(check)
    check.add_argument(
        "--online", action="store_true",
        help="Also request every external link.",
    )
    check.add_argument(
        "--timeout", type=float, default=10,
        help="Seconds per request for --online (default: 10).",
    )

    listing = sub.add_parser("list", help="List posts, newest first.")
    add_directory(listing)
    listing.add_argument("--tag", help="Only posts carrying this tag.")
    listing.add_argument("--since", type=_date_arg, help="Start date filter (YYYY-MM-DD).")
    listing.add_argument("--until", type=_date_arg, help="End date filter (YYYY-MM-DD).")

    export = sub.add_parser("export", help="Write a post index (.json, .yaml, .csv).")
    add_directory(export)
    export.add_argument("--output", required=True, help="Index file path.")

    book = sub.add_parser("book", help="Render the listing as a PDF book.")
    add_directory(book)
    add_site_root(book)
    book.add_argument("--title", default=None, help="Book title (default: directory name).")
    book.add_argument("--output", default="book.pdf", help="Output PDF file path (default: book.pdf).")
    book.add_argument(
        "--paper-size", default="letter", choices=sorted(PAPER_SIZES),
        help="Paper size (default: letter).",
    )
    book.add_argument("--tag", help="Only posts carrying this tag.")
    return parser.parse_args(argv)


def _site_root(args):
    if args.site_root:
        return args.site_root
    return os.path.dirname(os.path.abspath(args.directory))


def _load(directory):
    if not os.path.isdir(directory):
        print(f"Error: {directory} is not a directory.")
        raise SystemExit(1)
    posts, failures = load_posts(directory)
    for failure in failures:
        print(f"Warning: skipped {failure}")
    return posts, failures


def _listable(posts):
    """Posts that can be ordered; the rest are reported and dropped."""
    kept = []
    for post in posts:
        if post.date is None or not post.title:
            print(f"Warning: skipped {post.source}: missing title or valid date")
            continue
        kept.append(post)
    return sort_posts(kept)


def cmd_check(args):
    posts, failures = _load(args.directory)
    issues = validate_posts(posts, site_root=_site_root(args))
    if args.online:
        issues.extend(online_issues(posts, timeout=args.timeout))

    for issue in issues:
        print(issue)
    errors = sum(1 for i in issues if i.severity == "error") + len(failures)
    warnings = sum(1 for i in issues if i.severity == "warning")
    print(f"Checked {len(posts) + len(failures)} posts: {errors} error(s), {warnings} warning(s)")
    return 1 if failures or has_errors(issues) else 0


def cmd_list(args):
    posts, _ = _load(args.directory)
    posts = _listable(filter_posts(posts, tag=args.tag, since=args.since, until=args.until))
    for post in posts:
        tags = f"  [{', '.join(sorted(post.tags))}]" if post.tags else ""
        print(f"{post.date.strftime('%Y-%m-%d')}  {post.title}{tags}")
    if not posts:
        print("No posts found matching the criteria.")
    return 0


def cmd_export(args):
    posts, _ = _load(args.directory)
    try:
        save_index(_listable(posts), args.output)
    except ValueError as e:
        print(f"Error: {e}")
        raise SystemExit(1)
    return 0


def cmd_book(args):
    posts, _ = _load(args.directory)
    posts = _listable(filter_posts(posts, tag=args.tag))
    if not posts:
        print("No posts found matching the criteria.")
        return 0

    title = args.title or os.path.basename(os.path.abspath(args.directory)).strip("_").title()
    print(f"Rendering {len(posts)} posts to PDF...")
    renderer = BookRenderer(
        title=title,
        output_path=args.output,
        paper_size=args.paper_size,
        site_root=_site_root(args),
    )
    renderer.render(posts)
    return 0


COMMANDS = {
    "check": cmd_check,
    "list": cmd_list,
    "export": cmd_export,
    "book": cmd_book,
}


def main(argv=None):
    args = parse_args(argv)
    set_debug(args.debug)
    debug_print(f"Arguments: {vars(args)}")
    raise SystemExit(COMMANDS[args.command](args))


if __name__ == "__main__":
    main()
