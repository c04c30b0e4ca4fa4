import asyncio
import io

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.generic import RectangleObject

from signbox.capture.pad import decode_data_uri
from signbox.common.exceptions import MalformedDocument, PageOutOfRange, SerializationError
from signbox.compositor.pdf import composite_pdf, composite_pdf_async, count_pages, plan_placements
from signbox.placement.registry import SignatureBox
from tests.factories import image_xobjects, make_pdf, make_signature

ALICE = "alice@signbox-test.com"
BOB = "bob@signbox-test.com"


def _box(**overrides) -> SignatureBox:
    data = dict(signer_email=ALICE, page=1, x=50, y=50, width=30, aspect_ratio=3)
    data.update(overrides)
    return SignatureBox(**data)


def _matrices(page) -> list:
    """Every ``cm`` operand list in the page's content stream, in order."""
    return [[float(v) for v in operands] for operands, op in page.get_contents().operations if op == b"cm"]


@pytest.fixture
def signatures() -> dict[str, bytes]:
    return {
        ALICE: decode_data_uri(make_signature(0)),
        BOB: decode_data_uri(make_signature(30)),
    }


class TestComposite:
    def test_page_count_and_text_preserved(self, signatures):
        signed = composite_pdf(make_pdf(3), [_box(page=2)], signatures)
        reader = PdfReader(io.BytesIO(signed))
        assert len(reader.pages) == 3
        for number, page in enumerate(reader.pages, start=1):
            assert f"Contract page {number}" in page.extract_text()

    def test_only_targeted_pages_receive_images(self, signatures):
        signed = composite_pdf(make_pdf(3), [_box(page=2)], signatures)
        reader = PdfReader(io.BytesIO(signed))
        assert not image_xobjects(reader.pages[0])
        assert len(image_xobjects(reader.pages[1])) == 1
        assert not image_xobjects(reader.pages[2])

    def test_same_signer_twice_on_a_page_shares_one_image(self, signatures):
        boxes = [_box(x=25, y=20), _box(x=75, y=80, width=20)]
        signed = composite_pdf(make_pdf(1), boxes, signatures)
        page = PdfReader(io.BytesIO(signed)).pages[0]
        assert len(image_xobjects(page)) == 1

    def test_two_signers_on_a_page(self, signatures):
        boxes = [_box(x=25, y=80), _box(signer_email=BOB, x=75, y=80)]
        signed = composite_pdf(make_pdf(1), boxes, signatures)
        page = PdfReader(io.BytesIO(signed)).pages[0]
        assert len(image_xobjects(page)) == 2

    def test_boxes_without_a_signature_are_skipped(self, signatures):
        boxes = [_box(signer_email="carol@signbox-test.com")]
        signed = composite_pdf(make_pdf(1), boxes, signatures)
        assert not image_xobjects(PdfReader(io.BytesIO(signed)).pages[0])

    def test_signature_keys_are_case_insensitive(self, signatures):
        signed = composite_pdf(make_pdf(1), [_box()], {"Alice@SignBox-Test.com": signatures[ALICE]})
        assert len(image_xobjects(PdfReader(io.BytesIO(signed)).pages[0])) == 1

    def test_no_boxes_returns_equivalent_document(self, signatures):
        original = make_pdf(2)
        signed = composite_pdf(original, [], signatures)
        before = PdfReader(io.BytesIO(original))
        after = PdfReader(io.BytesIO(signed))
        assert len(after.pages) == len(before.pages)
        assert [p.extract_text() for p in after.pages] == [p.extract_text() for p in before.pages]

    def test_repeated_composites_place_images_identically(self, signatures):
        original = make_pdf(2)
        boxes = [_box(x=25, y=80), _box(signer_email=BOB, x=75, y=80), _box(page=2)]
        first = PdfReader(io.BytesIO(composite_pdf(original, boxes, signatures)))
        second = PdfReader(io.BytesIO(composite_pdf(original, boxes, signatures)))
        for a, b in zip(first.pages, second.pages):
            assert _matrices(a) == _matrices(b)
        assert _matrices(first.pages[0])

    def test_page_out_of_range(self, signatures):
        with pytest.raises(PageOutOfRange) as exc:
            composite_pdf(make_pdf(2), [_box(page=3)], signatures)
        assert exc.value.status_code == 422

    @pytest.mark.parametrize("payload", [b"", b"%PDF-1.4 this is not really a pdf", b"hello"])
    def test_malformed_pdf(self, payload, signatures):
        with pytest.raises(MalformedDocument):
            composite_pdf(payload, [_box()], signatures)

    def test_undecodable_signature_image(self):
        with pytest.raises(SerializationError):
            composite_pdf(make_pdf(1), [_box()], {ALICE: b"definitely not a png"})

    async def test_async_wrapper(self, signatures):
        signed = await composite_pdf_async(make_pdf(1), [_box()], signatures)
        assert count_pages(signed) == 1

    async def test_concurrent_composites_are_independent(self, signatures):
        results = await asyncio.gather(
            composite_pdf_async(make_pdf(1), [_box()], signatures),
            composite_pdf_async(make_pdf(2), [_box(page=2)], signatures),
        )
        assert [count_pages(r) for r in results] == [1, 2]


class TestPlanPlacements:
    def test_rect_in_page_space(self):
        writer = PdfWriter(clone_from=PdfReader(io.BytesIO(make_pdf(1))))
        plan = plan_placements(writer, [_box()], {ALICE})
        rect = plan[0][0].rect
        assert (rect.x, rect.y, rect.width, rect.height) == pytest.approx((210, 370, 180, 60))

    def test_mediabox_origin_offset(self):
        writer = PdfWriter(clone_from=PdfReader(io.BytesIO(make_pdf(1))))
        writer.pages[0].mediabox = RectangleObject([100, 50, 700, 850])
        rect = plan_placements(writer, [_box()], {ALICE})[0][0].rect
        assert (rect.x, rect.y) == pytest.approx((310, 420))

    def test_rotated_page_is_normalized(self):
        writer = PdfWriter(clone_from=PdfReader(io.BytesIO(make_pdf(1))))
        writer.pages[0].rotate(90)
        plan = plan_placements(writer, [_box()], {ALICE})
        assert writer.pages[0].rotation == 0
        # the displayed page is landscape, so the box is sized against its width
        assert plan[0][0].rect.width == pytest.approx(0.3 * 800)

    def test_groups_by_page(self):
        writer = PdfWriter(clone_from=PdfReader(io.BytesIO(make_pdf(3))))
        boxes = [_box(page=3), _box(page=1), _box(page=3, signer_email=BOB)]
        plan = plan_placements(writer, boxes, {ALICE, BOB})
        assert sorted(plan) == [0, 2]
        assert [p.signer_email for p in plan[2]] == [ALICE, BOB]


def test_count_pages():
    assert count_pages(make_pdf(4)) == 4
