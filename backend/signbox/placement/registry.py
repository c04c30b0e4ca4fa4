import math
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from signbox.common.exceptions import InvalidBox
from signbox.placement.geometry import MIN_ASPECT_RATIO, Corner, apply_drag, apply_resize, clamp_center, clamp_width


def _new_box_id() -> str:
    return uuid.uuid4().hex


class SignatureBox(BaseModel):
    """One signer's signature placement on one page, in page percentages.

    Construct boxes through this model (or :func:`parse_box`) so malformed
    input is rejected once, before it reaches the registry. Width and center
    are clamped so the box always lies fully on the page.
    """

    id: str = Field(default_factory=_new_box_id)
    document_id: Optional[uuid.UUID] = None
    signer_email: str = Field(min_length=3, max_length=255)
    page: int = Field(ge=1)
    x: float = Field(ge=0, le=100)
    y: float = Field(ge=0, le=100)
    width: float = 30.0
    aspect_ratio: float = 3.0

    model_config = {"from_attributes": True}

    @field_validator("signer_email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("signer_email must be an email address")
        return value

    @field_validator("x", "y", "width", "aspect_ratio")
    @classmethod
    def require_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        return value

    @field_validator("aspect_ratio")
    @classmethod
    def require_usable_aspect_ratio(cls, value: float) -> float:
        if value < MIN_ASPECT_RATIO:
            raise ValueError(f"aspect_ratio must be at least {MIN_ASPECT_RATIO}")
        return value

    @model_validator(mode="after")
    def keep_on_page(self) -> "SignatureBox":
        self.width = clamp_width(self.width, self.aspect_ratio)
        self.x, self.y = clamp_center(self.x, self.y, self.width, self.aspect_ratio)
        return self

    @property
    def height(self) -> float:
        return self.width / self.aspect_ratio


def parse_box(data: Union[dict, object]) -> SignatureBox:
    """Validate a raw mapping or ORM row into a :class:`SignatureBox`."""
    try:
        return SignatureBox.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "box"
        raise InvalidBox(f"Invalid signature box ({field}): {first['msg']}") from e


class BoxRegistry:
    """Boxes of one editing or signing session, kept in insertion order."""

    def __init__(self, boxes: Iterable[SignatureBox] = ()):
        self._boxes: dict[str, SignatureBox] = {}
        for box in boxes:
            self.add(box)

    def __len__(self) -> int:
        return len(self._boxes)

    def __iter__(self) -> Iterator[SignatureBox]:
        return iter(list(self._boxes.values()))

    def __contains__(self, box_id: object) -> bool:
        return box_id in self._boxes

    def get(self, box_id: str) -> Optional[SignatureBox]:
        return self._boxes.get(box_id)

    def add(self, box: SignatureBox) -> SignatureBox:
        if box.id in self._boxes:
            raise InvalidBox(f"Duplicate signature box id {box.id}")
        self._boxes[box.id] = box
        return box

    def remove(self, box_id: str) -> None:
        self._boxes.pop(box_id, None)

    def update(self, box_id: str, mutator: Callable[[SignatureBox], SignatureBox]) -> Optional[SignatureBox]:
        box = self._boxes.get(box_id)
        if box is None:
            return None
        updated = mutator(box)
        # dict assignment to an existing key keeps its position
        self._boxes[box_id] = updated
        return updated

    def by_page(self, page: int) -> list[SignatureBox]:
        return [b for b in self._boxes.values() if b.page == page]

    def by_signer_email(self, email: str) -> list[SignatureBox]:
        email = email.strip().lower()
        return [b for b in self._boxes.values() if b.signer_email == email]

    def unique_signer_emails(self) -> list[str]:
        return list(dict.fromkeys(b.signer_email for b in self._boxes.values()))

    def copy(self) -> "BoxRegistry":
        return BoxRegistry(self._boxes.values())


# ── Input events ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BoxAdded:
    box: SignatureBox


@dataclass(frozen=True)
class BoxRemoved:
    box_id: str


@dataclass(frozen=True)
class BoxDragged:
    box_id: str
    delta_x: float
    delta_y: float


@dataclass(frozen=True)
class BoxResized:
    box_id: str
    corner: Corner
    delta_x: float
    delta_y: float = 0.0


BoxEvent = Union[BoxAdded, BoxRemoved, BoxDragged, BoxResized]


def reduce(registry: BoxRegistry, event: BoxEvent) -> BoxRegistry:
    """Apply one editing event and return the next registry state.

    The input registry is left untouched. Deltas are the pointer movement in
    page percentages since the previous event of the same gesture, so a drag
    is replayed as a sequence of small steps.
    """
    nxt = registry.copy()
    if isinstance(event, BoxAdded):
        nxt.add(event.box)
    elif isinstance(event, BoxRemoved):
        nxt.remove(event.box_id)
    elif isinstance(event, BoxDragged):
        nxt.update(event.box_id, lambda b: apply_drag(b, event.delta_x, event.delta_y))
    elif isinstance(event, BoxResized):
        nxt.update(event.box_id, lambda b: apply_resize(b, event.corner, event.delta_x, event.delta_y))
    else:
        raise TypeError(f"Unsupported box event: {event!r}")
    return nxt
