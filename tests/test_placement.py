from festmap.models import Point, Size
from festmap.placement import CardPosition, ContainerBounds, card_size, place


def test_card_centred_above_anchor_with_room() -> None:
    position = place(Point(400, 400), ContainerBounds(800, 600), Size(300, 200))

    assert position == CardPosition(left=250, top=172, below=False)


def test_card_near_top_left_corner_flips_below_and_clamps_left() -> None:
    position = place(Point(5, 5), ContainerBounds(300, 300), Size(300, 280))

    assert position.left == 8
    assert position.top == 33
    assert position.below is True


def test_card_clamped_to_right_edge() -> None:
    position = place(Point(790, 500), ContainerBounds(800, 600), Size(300, 200))

    assert position.left == 492
    assert position.top == 272


def test_card_clamped_to_left_edge() -> None:
    position = place(Point(10, 500), ContainerBounds(800, 600), Size(300, 200))

    assert position.left == 8


def test_card_exactly_at_inset_stays_above() -> None:
    position = place(Point(400, 236), ContainerBounds(800, 600), Size(300, 200))

    assert position.top == 8
    assert position.below is False


def test_card_below_is_not_clamped_vertically() -> None:
    position = place(Point(400, 590), ContainerBounds(800, 600), Size(300, 600))

    assert position.below is True
    assert position.top == 618


def test_card_size_falls_back_when_unmeasured() -> None:
    assert card_size() == Size(300, 280)
    assert card_size(0) == Size(300, 280)
    assert card_size(180) == Size(300, 180)


def test_place_uses_fallback_card_size() -> None:
    position = place(Point(400, 400), Size(800, 600))

    assert position == CardPosition(left=250, top=92)


def test_to_page_offsets_by_container_origin() -> None:
    container = ContainerBounds(800, 600, left=360, top=20)

    page = CardPosition(left=250, top=92).to_page(container)

    assert page == CardPosition(left=610, top=112)
