import json

import pytest

from blog_posts.cli import main

OPTIONAL = """---
layout: post
title: Optional done right
date: 2021-03-01
tags: [java]
---
Use `Optional.ofNullable` instead of null checks.

```java
Optional.ofNullable(value).map(String::trim).orElse("");
```
"""

LOOM = """---
layout: post
title: Virtual threads
date: 2023-09-19
tags: [java, loom]
---
See [JEP 444](https://openjdk.org/jeps/444).
"""


@pytest.fixture
def site(tmp_path):
    posts = tmp_path / "_posts"
    posts.mkdir()
    (posts / "2021-03-01-optional.md").write_text(OPTIONAL)
    (posts / "2023-09-19-virtual-threads.md").write_text(LOOM)
    return tmp_path


def run(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_check_clean(site, capsys):
    assert run(["check", str(site / "_posts")]) == 0
    assert "Checked 2 posts: 0 error(s), 0 warning(s)" in capsys.readouterr().out


def test_check_reports_errors(site, capsys):
    (site / "_posts" / "2022-05-01-untitled.md").write_text("---\nlayout: post\ndate: 2022-05-01\n---\n[x]()\n")
    assert run(["check", str(site / "_posts")]) == 1
    out = capsys.readouterr().out
    assert "2022-05-01-untitled.md: [error] title: missing or empty" in out
    assert "malformed link target ''" in out


def test_list_newest_first(site, capsys):
    assert run(["list", str(site / "_posts")]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "2023-09-19  Virtual threads  [java, loom]",
        "2021-03-01  Optional done right  [java]",
    ]


def test_list_filters(site, capsys):
    assert run(["list", str(site / "_posts"), "--tag", "loom"]) == 0
    assert capsys.readouterr().out.splitlines() == ["2023-09-19  Virtual threads  [java, loom]"]
    assert run(["list", str(site / "_posts"), "--until", "2020-01-01"]) == 0
    assert "No posts found" in capsys.readouterr().out


def test_list_uses_environment_default(site, capsys, monkeypatch):
    monkeypatch.setenv("BLOG_POSTS_DIR", str(site / "_posts"))
    assert run(["list"]) == 0
    assert "Virtual threads" in capsys.readouterr().out


def test_export(site, tmp_path):
    output = tmp_path / "index.json"
    assert run(["export", str(site / "_posts"), "--output", str(output)]) == 0
    data = json.loads(output.read_text(encoding="utf-8"))
    assert [item["title"] for item in data] == ["Virtual threads", "Optional done right"]


def test_export_unsupported_extension(site, tmp_path, capsys):
    assert run(["export", str(site / "_posts"), "--output", str(tmp_path / "index.txt")]) == 1
    assert "Error: Unsupported file extension" in capsys.readouterr().out


def test_missing_directory(tmp_path, capsys):
    assert run(["list", str(tmp_path / "nope")]) == 1
    assert "is not a directory" in capsys.readouterr().out


def test_book(site, tmp_path):
    output = tmp_path / "book.pdf"
    assert run(["book", str(site / "_posts"), "--output", str(output), "--title", "Java Notes"]) == 0
    assert output.read_bytes().startswith(b"%PDF")
