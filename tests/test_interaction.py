from datetime import timedelta

import pytest

from festmap.interaction import SOURCE_LIST, SOURCE_MAP, InteractionController, InteractionSnapshot
from festmap.models import Point, Size
from festmap.timers import ManualScheduler
from tests.conftest import at_monday, make_merchant


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def controller(scheduler: ManualScheduler) -> InteractionController:
    start = at_monday(10)
    controller = InteractionController(scheduler, clock=lambda: start + timedelta(seconds=scheduler.now))
    controller.set_merchants([make_merchant(1, visits=30), make_merchant(2), make_merchant(3)])
    return controller


def _record(controller: InteractionController) -> list[InteractionSnapshot]:
    seen: list[InteractionSnapshot] = []
    controller.on_transition(seen.append)
    return seen


def _assert_selection_invariant(controller: InteractionController) -> None:
    visuals = controller.visuals()
    active = [entity_id for entity_id, visual in visuals.items() if visual.is_active]
    out_of_focus = {entity_id for entity_id, visual in visuals.items() if visual.is_out_of_focus}
    if controller.state.active_id is None:
        assert active == []
        assert out_of_focus == set()
    else:
        assert active == [controller.state.active_id]
        assert out_of_focus == set(visuals) - {controller.state.active_id}


def test_hover_shows_card_after_delay(controller: InteractionController, scheduler: ManualScheduler) -> None:
    seen = _record(controller)

    controller.hover_enter(1, SOURCE_MAP)
    scheduler.advance(0.1)
    assert controller.card is None

    scheduler.advance(0.1)
    assert controller.card is not None
    assert controller.card.entity_id == 1
    assert controller.state.hovered_id == 1
    assert [snapshot.reason for snapshot in seen] == ["show"]


def test_leaving_before_delay_cancels_show(controller: InteractionController, scheduler: ManualScheduler) -> None:
    seen = _record(controller)

    controller.hover_enter(1)
    scheduler.advance(0.1)
    controller.hover_leave(1)
    scheduler.advance(1)

    assert controller.card is None
    assert seen == []


def test_rapid_hover_across_markers_shows_only_last(
    controller: InteractionController, scheduler: ManualScheduler
) -> None:
    seen = _record(controller)

    controller.hover_enter(1)
    scheduler.advance(0.05)
    controller.hover_enter(2)
    scheduler.advance(0.05)
    controller.hover_enter(3)
    scheduler.advance(0.5)

    assert [snapshot.card.entity_id for snapshot in seen if snapshot.reason == "show"] == [3]


def test_leave_hides_card_after_delay(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.hover_enter(1)
    scheduler.advance(0.2)

    controller.hover_leave(1)
    assert controller.card is not None
    assert controller.snapshot().pending_hide == (1,)

    scheduler.advance(0.2)
    assert controller.card is None
    assert controller.state.hovered_id is None


def test_entering_card_keeps_it_open(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.hover_enter(1)
    scheduler.advance(0.2)
    controller.hover_leave(1)
    scheduler.advance(0.1)

    controller.card_enter()
    scheduler.advance(1)

    assert controller.card is not None
    controller.card_leave()
    scheduler.advance(0.2)
    assert controller.card is None


def test_reentering_marker_cancels_pending_hide(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.hover_enter(1)
    scheduler.advance(0.2)
    controller.hover_leave(1)
    scheduler.advance(0.1)

    controller.hover_enter(1)
    scheduler.advance(1)

    assert controller.card is not None
    assert controller.card.entity_id == 1


def test_select_cancels_timers_and_hides_card(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.hover_enter(1)
    scheduler.advance(0.2)
    controller.hover_enter(2)

    controller.select(2)
    scheduler.advance(1)

    snapshot = controller.snapshot()
    assert snapshot.active_id == 2
    assert snapshot.card is None
    assert snapshot.pending_show == ()
    assert snapshot.pending_hide == ()
    _assert_selection_invariant(controller)


def test_selection_invariant_holds_through_event_sequence(
    controller: InteractionController, scheduler: ManualScheduler
) -> None:
    steps = [
        lambda: controller.hover_enter(1),
        lambda: scheduler.advance(0.3),
        lambda: controller.select(1),
        lambda: controller.hover_enter(2),
        lambda: controller.select(3),
        lambda: controller.hover_leave(2),
        lambda: controller.deselect_all(),
        lambda: controller.hover_enter(2, SOURCE_LIST),
        lambda: scheduler.advance(0.3),
    ]
    for step in steps:
        step()
        _assert_selection_invariant(controller)


def test_hover_while_selected_only_highlights_peer(
    controller: InteractionController, scheduler: ManualScheduler
) -> None:
    controller.select(1)
    seen = _record(controller)

    controller.hover_enter(2, SOURCE_MAP)
    scheduler.advance(1)

    assert controller.card is None
    assert controller.state.peer_highlight_id == 2
    assert [snapshot.reason for snapshot in seen] == ["peer-highlight"]
    assert controller.visual(2).is_hovered is True
    assert controller.visual(2).is_out_of_focus is True

    controller.hover_leave(2)
    assert controller.state.peer_highlight_id is None
    assert seen[-1].reason == "hover-leave"


def test_deselect_all_resets_everything(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.select(1)
    controller.hover_enter(2)

    controller.deselect_all()

    state = controller.state
    assert state.active_id is None
    assert state.peer_highlight_id is None
    assert controller.visual(2).is_out_of_focus is False


def test_unknown_entity_is_ignored(controller: InteractionController, scheduler: ManualScheduler) -> None:
    seen = _record(controller)

    controller.hover_enter(99)
    controller.select(99)
    scheduler.advance(1)

    assert seen == []
    assert controller.state.active_id is None
    assert controller.visual(99) is None


def test_set_merchants_drops_vanished_selection(controller: InteractionController) -> None:
    controller.select(3)
    seen = _record(controller)

    controller.set_merchants([make_merchant(1), make_merchant(2)])

    assert controller.state.active_id is None
    assert seen[-1].reason == "reload"
    assert controller.entity_ids == [1, 2]
    _assert_selection_invariant(controller)


def test_refresh_recomputes_card_status_from_clock(scheduler: ManualScheduler) -> None:
    start = at_monday(12, 55)
    controller = InteractionController(scheduler, clock=lambda: start + timedelta(seconds=scheduler.now))
    controller.set_merchants([make_merchant(1)])
    controller.hover_enter(1)
    scheduler.advance(0.2)
    assert controller.card.marker.status.label == "Tanca en 5 min"

    scheduler.advance(6 * 60)
    controller.refresh()

    assert controller.card.marker.status.status == "closed"


def test_refresh_without_card_emits_nothing(controller: InteractionController) -> None:
    seen = _record(controller)

    controller.refresh()

    assert seen == []


def test_list_highlight_only_for_map_hover(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.hover_enter(1, SOURCE_MAP)
    scheduler.advance(0.2)
    assert controller.visual(1).is_list_highlighted is True
    assert "hover-from-map" in controller.visual(1).list_classes()

    controller.hover_enter(2, SOURCE_LIST)
    scheduler.advance(0.2)
    assert controller.visual(2).is_list_highlighted is False
    assert "marker-hover" in controller.visual(2).marker_classes()


def test_marker_classes_for_selection(controller: InteractionController) -> None:
    controller.select(1)

    assert controller.visual(1).marker_classes() == ["marker-open", "pulse-fast", "marker-active"]
    assert controller.visual(2).marker_classes() == ["marker-open", "pulse", "marker-out-of-focus"]
    assert controller.visual(2).list_classes() == ["merchant-item", "out-of-focus"]


def test_card_is_positioned_when_projector_is_set(scheduler: ManualScheduler) -> None:
    controller = InteractionController(
        scheduler,
        clock=lambda: at_monday(10),
        projector=lambda entity_id: Point(400, 400),
        container=lambda: Size(800, 600),
    )
    controller.set_merchants([make_merchant(1)])
    controller.measure_card(200)

    controller.hover_enter(1)
    scheduler.advance(0.2)

    assert controller.card.position.left == 250
    assert controller.card.position.top == 172


def test_card_not_shown_without_anchor(scheduler: ManualScheduler) -> None:
    controller = InteractionController(scheduler, clock=lambda: at_monday(10), projector=lambda entity_id: None)
    controller.set_merchants([make_merchant(1)])

    controller.hover_enter(1)
    scheduler.advance(0.2)

    assert controller.card is None
    assert controller.state.card_id is None


def test_unsubscribe_stops_notifications(controller: InteractionController) -> None:
    seen: list[InteractionSnapshot] = []
    unsubscribe = controller.on_transition(seen.append)

    unsubscribe()
    unsubscribe()
    controller.select(1)

    assert seen == []


def test_state_is_a_copy(controller: InteractionController) -> None:
    controller.state.active_id = 2

    assert controller.state.active_id is None


def test_list_hover_bounces_marker_once(controller: InteractionController, scheduler: ManualScheduler) -> None:
    seen = _record(controller)

    controller.hover_enter(2, SOURCE_LIST)

    assert controller.state.bounce_id == 2
    assert controller.visual(2).marker_classes()[-1] == "bouncing"
    assert seen[0].reason == "bounce"

    scheduler.advance(0.6)

    assert controller.state.bounce_id is None
    assert "bouncing" not in controller.visual(2).marker_classes()
    assert [snapshot.reason for snapshot in seen] == ["bounce", "show", "bounce-end"]


def test_map_hover_does_not_bounce(controller: InteractionController, scheduler: ManualScheduler) -> None:
    seen = _record(controller)

    controller.hover_enter(1, SOURCE_MAP)
    scheduler.advance(1)

    assert controller.state.bounce_id is None
    assert [snapshot.reason for snapshot in seen] == ["show"]


def test_list_hover_while_selected_does_not_bounce(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.select(1)

    controller.hover_enter(2, SOURCE_LIST)

    assert controller.state.bounce_id is None
    assert controller.state.peer_highlight_id == 2


def test_select_stops_bounce(controller: InteractionController, scheduler: ManualScheduler) -> None:
    seen = _record(controller)
    controller.hover_enter(2, SOURCE_LIST)

    controller.select(2)
    scheduler.advance(1)

    assert controller.state.bounce_id is None
    assert [snapshot.reason for snapshot in seen] == ["bounce", "select"]
    assert "bouncing" not in controller.visual(2).marker_classes()


def test_bounce_moves_to_latest_list_item(controller: InteractionController, scheduler: ManualScheduler) -> None:
    controller.hover_enter(1, SOURCE_LIST)
    scheduler.advance(0.3)
    controller.hover_enter(2, SOURCE_LIST)

    assert controller.state.bounce_id == 2
    scheduler.advance(0.4)
    assert controller.state.bounce_id == 2
    scheduler.advance(0.3)
    assert controller.state.bounce_id is None
