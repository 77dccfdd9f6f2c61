"""PDF book renderer using reportlab."""

import os
import re
from datetime import datetime
from xml.sax.saxutils import escape

from PIL import Image, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    BaseDocTemplate,
    Flowable,
    Frame,
    Image as RLImage,
    PageBreak,
    PageTemplate,
    Paragraph,
    Preformatted,
    Spacer,
    Table,
    TableStyle,
)

from .models import PAPER_SIZES
from .utils import debug_print
from .validation import resolve_asset

_HEADING_RE = re.compile(r'^(#{1,6})\s+(.*?)\s*#*\s*$')


class BookRenderer:
    """Render a listing of Posts into a PDF book using reportlab.platypus."""

    MARGIN = 0.75 * inch
    CODE_LINE_LENGTH = 90

    def __init__(self, title="Posts", output_path="book.pdf",
                 paper_size="letter", site_root=None):
        self.title = title
        self.output_path = output_path
        self.site_root = site_root

        size = PAPER_SIZES.get(paper_size, letter)
        self.PAGE_WIDTH, self.PAGE_HEIGHT = size
        self.body_width = self.PAGE_WIDTH - 2 * self.MARGIN

        self.styles = getSampleStyleSheet()
        self._define_styles()

        debug_print(f"Paper size: {paper_size} ({self.PAGE_WIDTH:.1f}x{self.PAGE_HEIGHT:.1f})")

    def _define_styles(self):
        self.styles.add(ParagraphStyle(
            name="BookTitle",
            parent=self.styles["Title"],
            fontSize=28,
            leading=34,
            alignment=TA_CENTER,
            spaceAfter=20,
        ))
        self.styles.add(ParagraphStyle(
            name="BookSubtitle",
            parent=self.styles["Normal"],
            fontSize=14,
            leading=18,
            alignment=TA_CENTER,
            textColor="#666666",
            spaceAfter=12,
        ))
        self.styles.add(ParagraphStyle(
            name="ChapterTitle",
            parent=self.styles["Heading1"],
            fontSize=18,
            leading=22,
            spaceBefore=0,
            spaceAfter=6,
        ))
        self.styles.add(ParagraphStyle(
            name="ChapterDate",
            parent=self.styles["Normal"],
            fontSize=10,
            leading=14,
            textColor="#888888",
            spaceAfter=12,
        ))
        self.styles.add(ParagraphStyle(
            name="SectionTitle",
            parent=self.styles["Heading2"],
            fontSize=13,
            leading=17,
            spaceBefore=8,
            spaceAfter=4,
        ))
        self.styles.add(ParagraphStyle(
            name="BodyText2",
            parent=self.styles["Normal"],
            fontSize=11,
            leading=15,
            spaceAfter=8,
        ))
        self.styles.add(ParagraphStyle(
            name="CodeBlock",
            parent=self.styles["Code"],
            fontSize=8.5,
            leading=10.5,
            backColor=colors.HexColor("#F4F4F4"),
            borderPadding=4,
            spaceBefore=6,
            spaceAfter=10,
        ))
        self.styles.add(ParagraphStyle(
            name="TOCEntry",
            parent=self.styles["Normal"],
            fontSize=11,
            leading=16,
        ))
        self.styles.add(ParagraphStyle(
            name="TOCHeading",
            parent=self.styles["Heading1"],
            fontSize=20,
            leading=24,
            alignment=TA_CENTER,
            spaceAfter=20,
        ))

    def _build_title_page(self, posts):
        """Build title page elements. posts is a listing, newest first."""
        elements = [Spacer(1, 2 * inch)]
        elements.append(Paragraph(escape(self.title), self.styles["BookTitle"]))
        elements.append(Spacer(1, 0.3 * inch))

        if posts:
            newest, oldest = posts[0].date, posts[-1].date
            date_range = f"{oldest.strftime('%B %Y')} – {newest.strftime('%B %Y')}"
            elements.append(Paragraph(date_range, self.styles["BookSubtitle"]))
            elements.append(Spacer(1, 0.2 * inch))
            elements.append(Paragraph(f"{len(posts)} posts", self.styles["BookSubtitle"]))

        generated = f"Generated {datetime.now().strftime('%Y-%m-%d')}"
        elements.append(Spacer(1, 1 * inch))
        elements.append(Paragraph(generated, self.styles["BookSubtitle"]))
        elements.append(PageBreak())
        return elements

    def _make_image_flowable(self, image_path, max_height=3 * inch):
        """Create a reportlab Image flowable with proper aspect ratio."""
        try:
            with Image.open(image_path) as img:
                orig_w, orig_h = img.size
        except (UnidentifiedImageError, OSError) as e:
            print(f"Warning: Could not process image {image_path}: {e}")
            return None

        aspect = orig_w / orig_h
        width = min(self.body_width, orig_w)
        height = width / aspect
        if height > max_height:
            height = max_height
            width = height * aspect
        return RLImage(image_path, width=width, height=height)

    def _build_text_elements(self, text):
        elements = []
        for para in re.split(r'\n\s*\n', text.strip()):
            para = para.strip()
            if not para:
                continue
            heading = _HEADING_RE.match(para)
            if heading and "\n" not in para:
                elements.append(Paragraph(escape(heading.group(2)), self.styles["SectionTitle"]))
            else:
                elements.append(Paragraph(escape(para).replace("\n", " "), self.styles["BodyText2"]))
        return elements

    def _build_post_elements(self, post, index):
        """Build flowable elements for a single post chapter."""
        elements = []
        anchor = f'<a name="post_{index}"/>'
        elements.append(Paragraph(f'{anchor}{escape(post.title)}', self.styles["ChapterTitle"]))

        date_str = post.date.strftime("%B %d, %Y")
        if post.tags:
            date_str += f" &mdash; {escape(', '.join(sorted(post.tags)))}"
        elements.append(Paragraph(date_str, self.styles["ChapterDate"]))

        if post.description:
            elements.append(Paragraph(f"<i>{escape(post.description)}</i>", self.styles["BodyText2"]))

        if post.image and self.site_root:
            path = resolve_asset(post.image, self.site_root)
            if os.path.isfile(path):
                img_flowable = self._make_image_flowable(path)
                if img_flowable:
                    elements.append(img_flowable)
                    elements.append(Spacer(1, 0.15 * inch))

        for block_type, block_value in post.content:
            if block_type == "text":
                elements.extend(self._build_text_elements(block_value))
            elif block_type == "code" and block_value.text.strip():
                # rendered verbatim, long lines wrapped
                elements.append(Preformatted(
                    block_value.text, self.styles["CodeBlock"],
                    maxLineLength=self.CODE_LINE_LENGTH, newLineChars="",
                ))
        return elements

    def _add_page_number(self, canvas, doc):
        """Page number footer callback for PageTemplate.onPage."""
        canvas.saveState()
        canvas.setFont("Helvetica", 9)
        canvas.drawCentredString(self.PAGE_WIDTH / 2, 0.5 * inch, f"- {canvas.getPageNumber()} -")
        canvas.restoreState()

    def _make_doc(self, path):
        frame = Frame(
            self.MARGIN, self.MARGIN,
            self.body_width, self.PAGE_HEIGHT - 2 * self.MARGIN,
            id='main',
            leftPadding=0, rightPadding=0,
            topPadding=0, bottomPadding=0,
        )
        doc = BaseDocTemplate(path, pagesize=(self.PAGE_WIDTH, self.PAGE_HEIGHT),
                              title=self.title)
        doc.addPageTemplates([PageTemplate(id='single', frames=[frame],
                                           onPage=self._add_page_number)])
        return doc

    def _build_toc(self, posts, post_pages, page_offset):
        entries = [Paragraph("Table of Contents", self.styles["TOCHeading"])]
        for i, post in enumerate(posts):
            raw_page = post_pages.get(i, "?")
            display_page = raw_page + page_offset if isinstance(raw_page, int) else raw_page
            toc_line = (
                f'<a href="#post_{i}" color="blue">{escape(post.title)}</a>'
                f' <font color="#888888">({post.date.strftime("%Y-%m-%d")})</font>'
            )
            toc_table = Table([[
                Paragraph(toc_line, self.styles["TOCEntry"]),
                Paragraph(str(display_page), self.styles["TOCEntry"]),
            ]], colWidths=[self.body_width - 0.6 * inch, 0.6 * inch])
            toc_table.setStyle(TableStyle([
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("ALIGN", (1, 0), (1, 0), "RIGHT"),
            ]))
            entries.append(toc_table)
        entries.append(PageBreak())
        return entries

    def render(self, posts):
        """Render posts into a PDF book.

        Uses a two-pass approach: first render content to determine page numbers,
        then prepend a TOC with accurate page references.
        """
        if not posts:
            print("No posts to render.")
            return

        debug_print(f"Starting render: {len(posts)} posts")

        # --- Pass 1: Render content without TOC to get page numbers ---
        tmp_path = self.output_path + ".tmp"
        page_tracker = _PageTracker()
        elements = self._build_title_page(posts)
        for i, post in enumerate(posts):
            elements.append(page_tracker.make_marker(i))
            elements.extend(self._build_post_elements(post, i))
            elements.append(PageBreak())
        self._make_doc(tmp_path).build(elements)
        post_pages = page_tracker.page_numbers
        debug_print(f"Pass 1 complete. Post page numbers: {post_pages}")

        # --- Pass 2: Build final PDF with TOC ---
        estimated_toc_pages = max(1, (len(posts) + 39) // 40)
        final_elements = self._build_title_page(posts)
        final_elements.extend(self._build_toc(posts, post_pages, estimated_toc_pages))
        for i, post in enumerate(posts):
            final_elements.extend(self._build_post_elements(post, i))
            final_elements.append(PageBreak())
        self._make_doc(self.output_path).build(final_elements)

        try:
            os.remove(tmp_path)
        except OSError:
            pass

        print(f"PDF saved to {self.output_path}")


class _PageTracker:
    """Tracks which page each post starts on during PDF generation."""

    def __init__(self):
        self.page_numbers = {}

    def make_marker(self, post_index):
        return _PageMarkerFlowable(self, post_index)


class _PageMarkerFlowable(Flowable):
    """Zero-height flowable that records its page number during layout."""

    def __init__(self, tracker, post_index):
        super().__init__()
        self.tracker = tracker
        self.post_index = post_index
        self.width = 0
        self.height = 0

    def wrap(self, available_width, available_height):
        return (0, 0)

    def draw(self):
        self.tracker.page_numbers[self.post_index] = self.canv.getPageNumber()
