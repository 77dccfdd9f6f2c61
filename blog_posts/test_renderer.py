from PIL import Image
from reportlab.platypus import Image as RLImage, Paragraph, Preformatted

from blog_posts.frontmatter import parse_post
from blog_posts.renderer import BookRenderer

TRAMPOLINE = """---
layout: post
title: Tail calls & trampolines
date: 2021-06-10
description: Recursion without <StackOverflowError>.
img: /assets/img/trampoline.png
tags: [java, recursion]
---
## Why

The JVM does not eliminate tail calls.

```java
sealed interface TailCall<T> permits Suspend, Return {}
```

```
```
"""


def make_post():
    return parse_post(TRAMPOLINE, source="2021-06-10-tail-calls.md")


def test_post_elements(tmp_path):
    img_dir = tmp_path / "assets" / "img"
    img_dir.mkdir(parents=True)
    Image.new("RGB", (800, 400), "white").save(img_dir / "trampoline.png")

    renderer = BookRenderer(title="Java Notes", output_path=str(tmp_path / "book.pdf"),
                            site_root=str(tmp_path))
    elements = renderer._build_post_elements(make_post(), 0)

    kinds = [type(e) for e in elements]
    assert kinds.count(Preformatted) == 1
    assert RLImage in kinds
    paragraphs = [e.text for e in elements if isinstance(e, Paragraph)]
    assert "Why" in paragraphs
    assert any("&lt;StackOverflowError&gt;" in p for p in paragraphs)


def test_image_skipped_without_site_root(tmp_path):
    renderer = BookRenderer(output_path=str(tmp_path / "book.pdf"))
    elements = renderer._build_post_elements(make_post(), 0)
    assert RLImage not in [type(e) for e in elements]


def test_render_writes_pdf(tmp_path):
    output = tmp_path / "book.pdf"
    posts = [make_post(), parse_post(TRAMPOLINE.replace("2021-06-10", "2021-06-11"), "other.md")]
    BookRenderer(title="Java Notes", output_path=str(output), paper_size="a4").render(posts)
    assert output.read_bytes().startswith(b"%PDF")
    assert not (tmp_path / "book.pdf.tmp").exists()


def test_render_nothing(tmp_path, capsys):
    output = tmp_path / "book.pdf"
    BookRenderer(output_path=str(output)).render([])
    assert not output.exists()
    assert "No posts to render." in capsys.readouterr().out
