"""
Summary Renderer for the find report.

Builds the pages appended after the official form: one localized summary
page and, when needed, photo pages holding up to two photos each.

Rendering happens in two steps:
1. plan_layout() computes every text line and image rectangle (pure geometry)
2. SummaryRenderer draws the plan with reportlab and returns PDF bytes

The engine appends the resulting pages to the filled template with pypdf.
"""

from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageOps
from reportlab.lib.colors import Color, black
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from shared.utils.logger import setup_logger, log_degraded
from unearthed.core.types import FindRecord, Photo

logger = setup_logger(__name__)

# A4 portrait, points
PAGE_WIDTH = 595.28
PAGE_HEIGHT = 841.89

TOP_MARGIN = 50
SIDE_MARGIN = 40
BOTTOM_MARGIN = 40

FONT = "Helvetica"
TITLE_SIZE = 14
TITLE_ADVANCE = 26
LINE_SIZE = 11
LINE_ADVANCE = 16
NOTES_GAP = 6
NOTE_SIZE = 10
NOTE_ADVANCE = 14
WRAP_CHARS = 85

CAPTION_SIZE = 9
CAPTION_GAP = 12
PHOTO_GAP = 24
MIN_IMAGE_HEIGHT = 150
PHOTOS_PER_PAGE = 2
TALL_RATIO = 1.3

GREY = Color(0.2, 0.2, 0.2)

SUMMARY = "summary"
PHOTOS = "photos"


@dataclass
class TextLine:
    text: str
    x: float
    y: float
    size: float
    color: Color = black
    role: str = "text"


@dataclass
class PlacedImage:
    """Where one photo goes; ``rotate`` turns it 90° before drawing."""
    photo_index: int
    number: int
    x: float
    y: float
    width: float
    height: float
    rotate: bool = False


@dataclass
class PageLayout:
    kind: str
    lines: List[TextLine] = field(default_factory=list)
    images: List[PlacedImage] = field(default_factory=list)


@dataclass
class SummaryLayout:
    pages: List[PageLayout] = field(default_factory=list)

    @property
    def photo_pages(self) -> List[PageLayout]:
        return [p for p in self.pages if p.kind == PHOTOS]

    @property
    def captions(self) -> List[str]:
        return [
            line.text
            for page in self.pages
            for line in page.lines
            if line.role == "caption"
        ]


class LayoutCursor:
    """Current page and baseline, moving monotonically down the page."""

    def __init__(self, page: PageLayout):
        self.page = page
        self.y = PAGE_HEIGHT - TOP_MARGIN

    def text(
        self, text: str, size: float, advance: float, color: Color = black, role: str = "text"
    ) -> None:
        self.page.lines.append(TextLine(text, SIDE_MARGIN, self.y, size, color, role))
        self.y -= advance

    def skip(self, amount: float) -> None:
        self.y -= amount

    def reset(self, page: PageLayout) -> None:
        self.page = page
        self.y = PAGE_HEIGHT - TOP_MARGIN


def wrap_text(text: str, max_chars: int = WRAP_CHARS) -> List[str]:
    """
    Greedy word wrap by character count (not by rendered width).

    Words longer than a line are kept whole on a line of their own.
    """
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) > max_chars and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def fit_image(
    width_px: float, height_px: float, max_width: float, max_height: float
) -> Tuple[float, float, bool]:
    """
    Size for an image inside a box, keeping the aspect ratio.

    Very tall images (height > 1.3 × width) are turned to landscape first so
    they do not shrink to a narrow strip. Images are never scaled up.

    Returns:
        (width, height, rotated)
    """
    rotated = height_px > TALL_RATIO * width_px
    if rotated:
        width_px, height_px = height_px, width_px

    scale = min(max_width / width_px, max_height / height_px, 1.0)
    return width_px * scale, height_px * scale, rotated


def _summary_lines(record: FindRecord, labels: Dict[str, str]) -> List[Tuple[str, str]]:
    depth = f"{record.depth} cm" if record.depth else ""
    return [
        (labels["object"], record.object.name),
        (labels["type"], record.object.type),
        (labels["material"], record.object.material),
        (labels["age"], record.object.age),
        (labels["area"], record.arealtype),
        (labels["depth"], depth),
        (labels["location"], record.location_text),
        (labels["finder"], record.finder.name),
        (labels["finderEmail"], record.finder.email),
        (labels["owner"], record.owner.name),
        (labels["ownerEmail"], record.owner.email),
    ]


def _place(
    cursor: LayoutCursor,
    index: int,
    size_px: Tuple[int, int],
    max_height: float,
    labels: Dict[str, str],
) -> None:
    width, height, rotated = fit_image(size_px[0], size_px[1], PAGE_WIDTH - 2 * SIDE_MARGIN, max_height)
    top = cursor.y
    image_y = top - height
    cursor.page.images.append(
        PlacedImage(index, index + 1, SIDE_MARGIN, image_y, width, height, rotated)
    )
    cursor.y = image_y - CAPTION_GAP
    cursor.text(f"{labels['photo']} {index + 1}", CAPTION_SIZE, PHOTO_GAP, GREY, role="caption")


def plan_layout(
    record: FindRecord,
    labels: Dict[str, str],
    image_sizes: Sequence[Tuple[int, int]],
) -> SummaryLayout:
    """
    Compute the summary page and photo pages.

    Args:
        record: Find record snapshot
        labels: Localized summary labels
        image_sizes: Pixel (width, height) of each photo, upright

    Returns:
        SummaryLayout whose first page is the summary page
    """
    layout = SummaryLayout()
    summary = PageLayout(SUMMARY)
    layout.pages.append(summary)
    cursor = LayoutCursor(summary)

    cursor.text(labels["title"], TITLE_SIZE, TITLE_ADVANCE, GREY)
    for label, value in _summary_lines(record, labels):
        cursor.text(f"{label}: {value or ''}", LINE_SIZE, LINE_ADVANCE)

    if record.notes:
        cursor.skip(NOTES_GAP)
        cursor.text(f"{labels['notes']}:", LINE_SIZE, LINE_ADVANCE)
        for line in wrap_text(record.notes):
            cursor.text(line, NOTE_SIZE, NOTE_ADVANCE)

    caption_space = CAPTION_GAP + CAPTION_SIZE
    slot_height = (PAGE_HEIGHT - TOP_MARGIN - BOTTOM_MARGIN - PHOTO_GAP) / PHOTOS_PER_PAGE
    photo_page: Optional[PageLayout] = None

    for index, size_px in enumerate(image_sizes):
        if index == 0:
            room = cursor.y - BOTTOM_MARGIN - caption_space
            if room > MIN_IMAGE_HEIGHT:
                _place(cursor, index, size_px, room, labels)
                continue

        if photo_page is None or len(photo_page.images) >= PHOTOS_PER_PAGE:
            photo_page = PageLayout(PHOTOS)
            layout.pages.append(photo_page)
            cursor.reset(photo_page)

        _place(cursor, index, size_px, slot_height - caption_space, labels)

    logger.debug(
        f"Planned {len(layout.pages)} page(s) for {len(image_sizes)} photo(s)"
    )
    return layout


def open_photo(photo: Photo) -> Image.Image:
    """Decode a photo and turn it upright according to its EXIF orientation."""
    image = Image.open(BytesIO(photo.data))
    image = ImageOps.exif_transpose(image)
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    return image


class SummaryRenderer:
    """
    Draw the summary and photo pages.

    Example:
        >>> renderer = SummaryRenderer()
        >>> pdf_bytes, layout = renderer.compose(record, photos, get_labels("no"))
        >>> len(layout.pages)
        1
    """

    def compose(
        self,
        record: FindRecord,
        photos: Sequence[Photo],
        labels: Dict[str, str],
    ) -> Tuple[bytes, SummaryLayout]:
        """
        Lay out and draw the extra pages.

        Photos Pillow cannot open are dropped before layout, so captions
        number only the photos actually shown.

        Returns:
            (PDF bytes of the new pages, the layout that was drawn)
        """
        images: List[Image.Image] = []
        for position, photo in enumerate(photos):
            try:
                images.append(open_photo(photo))
            except (OSError, SyntaxError, ValueError) as e:
                log_degraded(logger, "composing_pages", f"photo {photo.source or position + 1}", e)

        layout = plan_layout(record, labels, [image.size for image in images])
        pdf_bytes = self._draw(layout, images)

        logger.info(
            f"Composed {len(layout.pages)} page(s): summary + "
            f"{len(layout.photo_pages)} photo page(s), {len(images)} photo(s)"
        )
        return pdf_bytes, layout

    def _draw(self, layout: SummaryLayout, images: Sequence[Image.Image]) -> bytes:
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))

        for page in layout.pages:
            for placed in page.images:
                try:
                    self._draw_image(c, placed, images[placed.photo_index])
                except Exception as e:
                    log_degraded(logger, "composing_pages", f"photo {placed.number}", e)
            for line in page.lines:
                c.setFont(FONT, line.size)
                c.setFillColor(line.color)
                c.drawString(line.x, line.y, line.text)
            c.showPage()

        c.save()
        return buffer.getvalue()

    @staticmethod
    def _draw_image(c: canvas.Canvas, placed: PlacedImage, image: Image.Image) -> None:
        if placed.rotate:
            image = image.transpose(Image.Transpose.ROTATE_90)
        c.drawImage(
            ImageReader(image),
            placed.x,
            placed.y,
            width=placed.width,
            height=placed.height,
        )
