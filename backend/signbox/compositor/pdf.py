"""Draw signature images onto an existing PDF.

The signatures are painted on a reportlab overlay (one overlay page per
target page) that is then merged into the original pages with pypdf. The
overlay is a single reportlab document, so each distinct image becomes one
image XObject that every box drawing it refers to.
"""

import asyncio
import io
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from signbox.common.exceptions import MalformedDocument, PageOutOfRange, SerializationError
from signbox.placement.geometry import PixelRect, box_pixel_rect
from signbox.placement.registry import SignatureBox

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    page_index: int
    signer_email: str
    rect: PixelRect


def _load_pdf(pdf_bytes: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        page_count = len(reader.pages)
    except Exception as e:
        raise MalformedDocument(f"PDF could not be parsed: {e}") from e
    if reader.is_encrypted:
        raise MalformedDocument("Encrypted PDFs cannot be signed")
    if page_count == 0:
        raise MalformedDocument("PDF has no pages")
    return reader


def _load_image(signer_email: str, png_bytes: bytes) -> ImageReader:
    try:
        image = Image.open(io.BytesIO(png_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise SerializationError(f"Signature image of {signer_email} could not be decoded") from e
    return ImageReader(image.convert("RGBA"))


def plan_placements(
    writer: PdfWriter,
    boxes: Iterable[SignatureBox],
    signer_emails: set[str],
) -> dict[int, list[Placement]]:
    """Resolve every drawable box to a page and a rectangle in page space."""
    page_count = len(writer.pages)
    plan: dict[int, list[Placement]] = defaultdict(list)
    for box in boxes:
        if box.signer_email not in signer_emails:
            continue
        index = box.page - 1
        if index >= page_count:
            raise PageOutOfRange(f"Box {box.id} targets page {box.page} but the document has {page_count} page(s)")
        page = writer.pages[index]
        if page.rotation and index not in plan:
            # boxes were placed on the page as displayed, so bake the rotation in first
            page.transfer_rotation_to_content()
        mediabox = page.mediabox
        rect = box_pixel_rect(box, float(mediabox.width), float(mediabox.height))
        rect = PixelRect(
            x=rect.x + float(mediabox.left),
            y=rect.y + float(mediabox.bottom),
            width=rect.width,
            height=rect.height,
        )
        plan[index].append(Placement(page_index=index, signer_email=box.signer_email, rect=rect))
    return plan


def _render_overlay(
    writer: PdfWriter,
    plan: Mapping[int, list[Placement]],
    images: Mapping[str, ImageReader],
) -> tuple[bytes, list[int]]:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, invariant=1)
    order = sorted(plan)
    for index in order:
        mediabox = writer.pages[index].mediabox
        c.setPageSize((float(mediabox.right), float(mediabox.top)))
        for placement in plan[index]:
            r = placement.rect
            logger.debug(
                "Drawing signature of %s on page %d at (%.1f, %.1f) %.1fx%.1f",
                placement.signer_email, index + 1, r.x, r.y, r.width, r.height,
            )
            c.drawImage(images[placement.signer_email], r.x, r.y, width=r.width, height=r.height, mask="auto")
        c.showPage()
    c.save()
    return buf.getvalue(), order


def composite_pdf(
    pdf_bytes: bytes,
    boxes: Iterable[SignatureBox],
    signatures: Mapping[str, bytes],
) -> bytes:
    """Return ``pdf_bytes`` with each signer's PNG drawn into their boxes.

    ``signatures`` maps signer email to PNG bytes. Boxes whose signer has no
    entry are skipped.
    """
    reader = _load_pdf(pdf_bytes)
    writer = PdfWriter(clone_from=reader)

    signatures = {email.strip().lower(): png for email, png in signatures.items() if png}
    plan = plan_placements(writer, boxes, set(signatures))

    if plan:
        used = {p.signer_email for placements in plan.values() for p in placements}
        images = {email: _load_image(email, signatures[email]) for email in used}
        overlay_bytes, order = _render_overlay(writer, plan, images)
        overlay = PdfReader(io.BytesIO(overlay_bytes))
        for overlay_page, index in zip(overlay.pages, order):
            writer.pages[index].merge_page(overlay_page)
        logger.info(
            "Composited %d signature box(es) from %d signer(s) onto %d page(s)",
            sum(len(p) for p in plan.values()), len(used), len(plan),
        )

    out = io.BytesIO()
    try:
        writer.write(out)
    except Exception as e:
        raise SerializationError(f"Signed PDF could not be written: {e}") from e
    return out.getvalue()


async def composite_pdf_async(
    pdf_bytes: bytes,
    boxes: Iterable[SignatureBox],
    signatures: Mapping[str, bytes],
) -> bytes:
    return await asyncio.to_thread(composite_pdf, pdf_bytes, list(boxes), dict(signatures))


def count_pages(pdf_bytes: bytes) -> int:
    return len(_load_pdf(pdf_bytes).pages)
