"""Tests for the idle/hibernate state machine and its timer-driven controller."""

from __future__ import annotations

import asyncio

import pytest

from sidebar.services.content_view import BLANK_SRC, EmbeddedView
from sidebar.services.hibernate import (
    Activity,
    ContentCleared,
    ContentLoaded,
    HibernateState,
    HibernateStatus,
    HideOverlay,
    IdleController,
    IdleTimerFired,
    LoadContent,
    ScheduleIdleTimer,
    ShowOverlay,
    UnloadContent,
    transition,
)

T = 300.0
SITE = "https://github.com"


def _loaded(at: float = 0.0) -> HibernateState:
    state, _ = transition(HibernateState(), ContentLoaded(SITE, at=at), idle_timeout=T)
    return state


def test_activity_resets_last_activity_and_restarts_timer() -> None:
    state, effects = transition(_loaded(), Activity(at=120.0), idle_timeout=T)

    assert state.last_activity_at == 120.0
    assert effects == (ScheduleIdleTimer(T),)


def test_timer_before_timeout_reschedules_for_remainder() -> None:
    state, effects = transition(_loaded(), IdleTimerFired(at=299.0), idle_timeout=T)

    assert state.status is HibernateStatus.ACTIVE
    assert effects == (ScheduleIdleTimer(1.0),)


@pytest.mark.parametrize("fired_at", [300.0, 301.0])
def test_timer_at_or_after_timeout_hibernates(fired_at: float) -> None:
    state, effects = transition(_loaded(), IdleTimerFired(at=fired_at), idle_timeout=T)

    assert state.is_hibernated
    assert state.pending_url == SITE
    assert state.loaded_url is None
    assert effects == (UnloadContent(), ShowOverlay())


def test_timer_without_loaded_content_only_restarts() -> None:
    state, effects = transition(HibernateState(), IdleTimerFired(at=900.0), idle_timeout=T)

    assert state.status is HibernateStatus.ACTIVE
    assert effects == (ScheduleIdleTimer(T),)


def test_activity_while_hibernated_restores_pending_url() -> None:
    hibernated, _ = transition(_loaded(), IdleTimerFired(at=300.0), idle_timeout=T)

    state, effects = transition(hibernated, Activity(at=500.0), idle_timeout=T)

    assert state.status is HibernateStatus.ACTIVE
    assert state.pending_url is None
    assert state.loaded_url == SITE
    assert effects == (LoadContent(SITE), HideOverlay(), ScheduleIdleTimer(T))


def test_timer_while_hibernated_is_ignored() -> None:
    hibernated, _ = transition(_loaded(), IdleTimerFired(at=300.0), idle_timeout=T)

    assert transition(hibernated, IdleTimerFired(at=900.0), idle_timeout=T) == (hibernated, ())


def test_opening_another_site_while_hibernated_replaces_pending_url() -> None:
    hibernated, _ = transition(_loaded(), IdleTimerFired(at=300.0), idle_timeout=T)

    state, effects = transition(
        hibernated, ContentLoaded("https://claude.ai", at=400.0), idle_timeout=T
    )

    assert state.status is HibernateStatus.ACTIVE
    assert state.pending_url is None
    assert state.loaded_url == "https://claude.ai"
    assert effects == (HideOverlay(), ScheduleIdleTimer(T))


def test_content_cleared_forgets_loaded_url() -> None:
    state, effects = transition(_loaded(), ContentCleared(), idle_timeout=T)

    assert state.loaded_url is None
    assert effects == ()


def test_unknown_event_raises() -> None:
    with pytest.raises(TypeError):
        transition(HibernateState(), object(), idle_timeout=T)  # type: ignore[arg-type]


class ManualClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_controller_hibernates_and_wakes_view() -> None:
    view = EmbeddedView()
    controller = IdleController(view, idle_timeout=0.05)
    controller.start()
    view.load(SITE)
    controller.content_loaded(SITE)

    await asyncio.sleep(0.15)

    assert controller.state.is_hibernated
    assert view.src == BLANK_SRC
    assert view.current_url == SITE
    assert view.overlay_visible

    controller.notify_activity()

    assert not controller.state.is_hibernated
    assert view.src == SITE
    assert not view.overlay_visible
    assert controller.timer_active
    controller.stop()
    assert not controller.timer_active


@pytest.mark.asyncio
async def test_controller_keeps_a_single_timer() -> None:
    clock = ManualClock()
    controller = IdleController(EmbeddedView(), idle_timeout=T, clock=clock)
    controller.start()
    first = controller._timer

    clock.now = 10.0
    controller.notify_activity()

    assert first is not None and first.cancelled()
    assert controller.timer_active
    assert controller.seconds_idle() == 0.0
    controller.stop()


@pytest.mark.asyncio
async def test_activity_keeps_view_loaded() -> None:
    view = EmbeddedView()
    controller = IdleController(view, idle_timeout=0.5)
    controller.start()
    view.load(SITE)
    controller.content_loaded(SITE)

    for _ in range(4):
        await asyncio.sleep(0.2)
        controller.notify_activity()

    assert not controller.state.is_hibernated
    assert view.src == SITE
    controller.stop()


def test_content_cleared_while_hibernated_returns_to_active() -> None:
    hibernated, _ = transition(_loaded(), IdleTimerFired(at=300.0), idle_timeout=T)

    state, effects = transition(hibernated, ContentCleared(), idle_timeout=T)

    assert state.status is HibernateStatus.ACTIVE
    assert state.pending_url is None
    assert state.loaded_url is None
    assert effects == (HideOverlay(),)
