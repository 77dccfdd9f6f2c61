import csv
import json
from datetime import date, datetime

import pytest

from blog_posts.frontmatter import parse_post
from blog_posts.storage import (
    filter_posts,
    find_post_files,
    load_index,
    load_posts,
    save_index,
    sort_posts,
)


def post_text(title, day, tags="java"):
    return f"---\nlayout: post\ntitle: {title}\ndate: {day}\ntags: {tags}\n---\nBody of {title}.\n"


@pytest.fixture
def posts_dir(tmp_path):
    root = tmp_path / "_posts"
    (root / "loom").mkdir(parents=True)
    (root / ".drafts").mkdir()
    (root / "2021-03-01-optional.md").write_text(post_text("Optional", "2021-03-01"))
    (root / "2021-06-10-tail-calls.markdown").write_text(
        post_text("Tail calls", "2021-06-10", "java trampolines"))
    (root / "loom" / "2023-09-19-virtual-threads.md").write_text(
        post_text("Virtual threads", "2023-09-19", "java loom"))
    (root / "2022-01-05-broken.md").write_text("---\ntitle: never closed\n")
    (root / ".drafts" / "2024-01-01-draft.md").write_text(post_text("Draft", "2024-01-01"))
    (root / "notes.txt").write_text("not a post")
    return root


def test_find_post_files(posts_dir):
    names = [p[len(str(posts_dir)) + 1:] for p in find_post_files(str(posts_dir))]
    assert names == [
        "2021-03-01-optional.md",
        "2021-06-10-tail-calls.markdown",
        "2022-01-05-broken.md",
        "loom/2023-09-19-virtual-threads.md",
    ]


def test_load_posts_reports_failures(posts_dir):
    posts, failures = load_posts(str(posts_dir))
    assert [p.title for p in posts] == ["Optional", "Tail calls", "Virtual threads"]
    assert len(failures) == 1
    assert failures[0].source == "2022-01-05-broken.md"


def test_sort_posts_descending_with_stable_ties():
    a = parse_post(post_text("A", "2021-03-01"), source="b.md")
    b = parse_post(post_text("B", "2021-03-01"), source="a.md")
    c = parse_post(post_text("C", "2022-01-01"), source="c.md")
    # 2021-03-02 04:30 UTC, after the naive midnight posts
    d = parse_post(post_text("D", "2021-03-01T23:30:00-05:00"), source="d.md")

    expected = ["C", "D", "B", "A"]
    assert [p.title for p in sort_posts([a, b, c, d])] == expected
    assert [p.title for p in sort_posts([d, c, b, a])] == expected


def test_sort_posts_rejects_undated():
    undated = parse_post(post_text("X", "someday"), source="x.md")
    with pytest.raises(ValueError, match="x.md"):
        sort_posts([undated])


def test_filter_posts(posts_dir):
    posts, _ = load_posts(str(posts_dir))
    assert [p.title for p in filter_posts(posts, tag="loom")] == ["Virtual threads"]
    assert [p.title for p in filter_posts(posts, since=date(2021, 6, 10))] == [
        "Tail calls", "Virtual threads"]
    assert [p.title for p in filter_posts(posts, until=date(2021, 6, 9))] == ["Optional"]


def test_save_and_load_json_index(posts_dir, tmp_path):
    posts, _ = load_posts(str(posts_dir))
    path = str(tmp_path / "index.json")
    save_index(sort_posts(posts), path)

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data[0]["title"] == "Virtual threads"
    assert data[0]["permalink"] == "/2023/09/19/virtual-threads.html"
    assert data[0]["tags"] == ["java", "loom"]

    loaded = load_index(path)
    assert loaded[0].date == datetime(2023, 9, 19)
    assert loaded[0].tags == frozenset({"java", "loom"})
    assert loaded[0].code_blocks == []


def test_save_yaml_and_csv_index(posts_dir, tmp_path):
    posts, _ = load_posts(str(posts_dir))
    yaml_path = str(tmp_path / "index.yaml")
    save_index(posts, yaml_path)
    assert [p.source for p in load_index(yaml_path)] == [p.source for p in posts]

    csv_path = str(tmp_path / "index.csv")
    save_index(posts, csv_path)
    with open(csv_path, encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["source", "date", "title", "description", "img", "tags", "permalink"]
    assert rows[2][5] == "java trampolines"


def test_unsupported_index_extension(tmp_path):
    with pytest.raises(ValueError):
        save_index([], str(tmp_path / "index.txt"))
    with pytest.raises(ValueError):
        load_index(str(tmp_path / "index.csv"))
