"""Factories, file builders and request helpers shared by the test modules."""

import io
import json
import uuid

import factory
from httpx import AsyncClient
from reportlab.pdfgen import canvas

from signbox.capture.pad import SignatureCapture


class UserFactory(factory.Factory):
    class Meta:
        model = dict

    id = factory.LazyFunction(uuid.uuid4)
    email = factory.LazyFunction(lambda: f"user-{uuid.uuid4().hex[:8]}@signbox-test.com")
    name = factory.Faker("name")


class BoxFactory(factory.Factory):
    class Meta:
        model = dict

    signer_email = "alice@signbox-test.com"
    page = 1
    x = 50.0
    y = 50.0
    width = 30.0
    aspect_ratio = 3.0


def make_pdf(pages: int = 2, size: tuple[float, float] = (600, 800)) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=size, invariant=1)
    for number in range(1, pages + 1):
        c.drawString(72, size[1] - 72, f"Contract page {number}")
        c.showPage()
    c.save()
    return buf.getvalue()


def make_signature(offset: int = 0) -> str:
    """PNG data URI of a short scribble; different offsets give different images."""
    pad = SignatureCapture(width=300, height=100)
    pad.draw_stroke([(20 + offset, 50), (80 + offset, 20), (140 + offset, 80), (220, 40)])
    return pad.export()


async def upload_document(
    ac: AsyncClient,
    boxes: list[dict],
    title: str = "Service Agreement",
    pdf: bytes | None = None,
):
    return await ac.post(
        "/api/documents",
        data={"title": title, "boxes": json.dumps(boxes)},
        files={"file": ("service agreement.pdf", pdf if pdf is not None else make_pdf(), "application/pdf")},
    )


def image_xobjects(page) -> set:
    """Indirect ids of every image XObject reachable from a pypdf page's resources."""
    found = set()

    def walk(resources):
        if resources is None:
            return
        xobjects = resources.get_object().get("/XObject")
        if xobjects is None:
            return
        xobjects = xobjects.get_object()
        for name in xobjects:
            ref = xobjects.raw_get(name)
            obj = ref.get_object()
            if obj.get("/Subtype") == "/Image":
                found.add(getattr(ref, "idnum", id(obj)))
            elif obj.get("/Subtype") == "/Form":
                walk(obj.get("/Resources"))

    walk(page.get("/Resources"))
    return found
