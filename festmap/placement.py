from __future__ import annotations

from dataclasses import dataclass

from festmap.constants import CARD_FALLBACK_HEIGHT_PX, CARD_GAP_PX, CARD_INSET_PX, CARD_WIDTH_PX
from festmap.models import Point, Size


@dataclass(frozen=True, slots=True)
class ContainerBounds:
    width: float
    height: float
    left: float = 0.0
    top: float = 0.0


@dataclass(frozen=True, slots=True)
class CardPosition:
    left: float
    top: float
    below: bool = False

    def to_page(self, container: ContainerBounds) -> "CardPosition":
        return CardPosition(left=container.left + self.left, top=container.top + self.top, below=self.below)


def card_size(measured_height: float | None = None, width: float = CARD_WIDTH_PX) -> Size:
    height = measured_height if measured_height else CARD_FALLBACK_HEIGHT_PX
    return Size(width=width, height=height)


def place(
    anchor: Point,
    container: ContainerBounds | Size,
    card: Size | None = None,
    *,
    gap: float = CARD_GAP_PX,
    inset: float = CARD_INSET_PX,
) -> CardPosition:
    """Position the floating card for an anchor given in container pixels.

    The card is centred above the anchor and clamped horizontally inside the
    container. When there is no room above it flips below the anchor; it is
    never clamped vertically.
    """
    size = card or card_size()
    left = anchor.x - size.width / 2
    top = anchor.y - size.height - gap

    max_left = container.width - size.width - inset
    if left > max_left:
        left = max_left
    # The left inset wins when the card is wider than the container allows.
    if left < inset:
        left = inset

    if top < inset:
        return CardPosition(left=left, top=anchor.y + gap, below=True)
    return CardPosition(left=left, top=top)
