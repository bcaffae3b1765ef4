"""Idle detection that suspends and resumes the embedded content view.

The state machine itself is the pure :func:`transition` function: it maps the
current :class:`HibernateState` and one event to the next state plus a tuple
of effects. :class:`IdleController` feeds it events, applies the effects to a
:class:`ContentHost`, and owns the single idle timer.

States and transitions:
* ``ACTIVE`` + activity -> stay active, restart the idle timer.
* ``ACTIVE`` + timer, content loaded, idle >= timeout -> ``HIBERNATED``;
  remember the loaded URL, unload it and show the overlay.
* ``ACTIVE`` + timer, nothing loaded -> restart the timer.
* ``HIBERNATED`` + activity -> ``ACTIVE``; reload the remembered URL, hide
  the overlay, restart the timer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Protocol

from sidebar.settings import DEFAULT_IDLE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class HibernateStatus(str, Enum):
    ACTIVE = "active"
    HIBERNATED = "hibernated"


class ActivityKind(str, Enum):
    """DOM-level signals that count as user activity."""

    POINTER_MOVE = "pointer_move"
    KEY_PRESS = "key_press"
    SCROLL = "scroll"
    TOUCH = "touch"
    VISIBLE = "visible"


@dataclass(frozen=True, slots=True)
class HibernateState:
    status: HibernateStatus = HibernateStatus.ACTIVE
    last_activity_at: float = 0.0
    pending_url: str | None = None
    loaded_url: str | None = None

    @property
    def is_hibernated(self) -> bool:
        return self.status is HibernateStatus.HIBERNATED


# -- Events ---------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Activity:
    at: float
    kind: ActivityKind = ActivityKind.POINTER_MOVE


@dataclass(frozen=True, slots=True)
class IdleTimerFired:
    at: float


@dataclass(frozen=True, slots=True)
class ContentLoaded:
    url: str
    at: float


@dataclass(frozen=True, slots=True)
class ContentCleared:
    pass


HibernateEvent = Activity | IdleTimerFired | ContentLoaded | ContentCleared


# -- Effects --------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ScheduleIdleTimer:
    delay: float


@dataclass(frozen=True, slots=True)
class UnloadContent:
    pass


@dataclass(frozen=True, slots=True)
class LoadContent:
    url: str


@dataclass(frozen=True, slots=True)
class ShowOverlay:
    pass


@dataclass(frozen=True, slots=True)
class HideOverlay:
    pass


HibernateEffect = ScheduleIdleTimer | UnloadContent | LoadContent | ShowOverlay | HideOverlay


def transition(
    state: HibernateState,
    event: HibernateEvent,
    *,
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
) -> tuple[HibernateState, tuple[HibernateEffect, ...]]:
    """Return the next state and the effects the host must perform."""

    if isinstance(event, Activity):
        if not state.is_hibernated:
            return replace(state, last_activity_at=event.at), (ScheduleIdleTimer(idle_timeout),)

        effects: list[HibernateEffect] = []
        if state.pending_url is not None:
            effects.append(LoadContent(state.pending_url))
        effects.extend([HideOverlay(), ScheduleIdleTimer(idle_timeout)])
        resumed = HibernateState(
            status=HibernateStatus.ACTIVE,
            last_activity_at=event.at,
            pending_url=None,
            loaded_url=state.pending_url,
        )
        return resumed, tuple(effects)

    if isinstance(event, IdleTimerFired):
        if state.is_hibernated:
            return state, ()
        if state.loaded_url is None:
            return state, (ScheduleIdleTimer(idle_timeout),)

        elapsed = event.at - state.last_activity_at
        if elapsed < idle_timeout:
            return state, (ScheduleIdleTimer(idle_timeout - elapsed),)

        hibernated = HibernateState(
            status=HibernateStatus.HIBERNATED,
            last_activity_at=state.last_activity_at,
            pending_url=state.loaded_url,
            loaded_url=None,
        )
        return hibernated, (UnloadContent(), ShowOverlay())

    if isinstance(event, ContentLoaded):
        # Opening a site is itself activity; a new URL replaces any pending one.
        effects = (ScheduleIdleTimer(idle_timeout),)
        if state.is_hibernated:
            effects = (HideOverlay(), *effects)
        return (
            HibernateState(
                status=HibernateStatus.ACTIVE,
                last_activity_at=event.at,
                pending_url=None,
                loaded_url=event.url,
            ),
            effects,
        )

    if isinstance(event, ContentCleared):
        # Nothing left to wake up to, so a hibernated view returns to active.
        cleared = replace(
            state, status=HibernateStatus.ACTIVE, loaded_url=None, pending_url=None
        )
        return cleared, ((HideOverlay(),) if state.is_hibernated else ())

    raise TypeError(f"Unsupported hibernate event: {event!r}")


class ContentHost(Protocol):
    """Owner of the embedded content resource (the presentation layer)."""

    def load(self, url: str) -> None: ...

    def unload(self) -> None: ...

    def show_overlay(self) -> None: ...

    def hide_overlay(self) -> None: ...


class IdleController:
    """Drives :func:`transition` from activity signals and one idle timer.

    Must be used from inside a running event loop. Rescheduling always cancels
    the previous timer handle, so at most one timer is live.
    """

    def __init__(
        self,
        host: ContentHost,
        *,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._host = host
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._state = HibernateState(last_activity_at=clock())
        self._timer: asyncio.TimerHandle | None = None

    @property
    def state(self) -> HibernateState:
        return self._state

    @property
    def idle_timeout(self) -> float:
        return self._idle_timeout

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and not self._timer.cancelled()

    def seconds_idle(self) -> float:
        return max(0.0, self._clock() - self._state.last_activity_at)

    def start(self) -> None:
        self._state = replace(self._state, last_activity_at=self._clock())
        self._schedule(self._idle_timeout)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def notify_activity(self, kind: ActivityKind = ActivityKind.POINTER_MOVE) -> HibernateState:
        return self.dispatch(Activity(at=self._clock(), kind=kind))

    def content_loaded(self, url: str) -> HibernateState:
        return self.dispatch(ContentLoaded(url=url, at=self._clock()))

    def content_cleared(self) -> HibernateState:
        return self.dispatch(ContentCleared())

    def dispatch(self, event: HibernateEvent) -> HibernateState:
        previous = self._state
        self._state, effects = transition(previous, event, idle_timeout=self._idle_timeout)
        if previous.status is not self._state.status:
            logger.info(
                "Content view %s (pending=%s)",
                self._state.status.value,
                self._state.pending_url or previous.pending_url,
            )
        for effect in effects:
            self._apply(effect)
        return self._state

    def _apply(self, effect: HibernateEffect) -> None:
        if isinstance(effect, ScheduleIdleTimer):
            self._schedule(effect.delay)
        elif isinstance(effect, UnloadContent):
            self._host.unload()
        elif isinstance(effect, LoadContent):
            self._host.load(effect.url)
        elif isinstance(effect, ShowOverlay):
            self._host.show_overlay()
        elif isinstance(effect, HideOverlay):
            self._host.hide_overlay()

    def _schedule(self, delay: float) -> None:
        self.stop()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self.dispatch(IdleTimerFired(at=self._clock()))


__all__ = [
    "Activity",
    "ActivityKind",
    "ContentCleared",
    "ContentHost",
    "ContentLoaded",
    "HibernateEffect",
    "HibernateEvent",
    "HibernateState",
    "HibernateStatus",
    "HideOverlay",
    "IdleController",
    "IdleTimerFired",
    "LoadContent",
    "ScheduleIdleTimer",
    "ShowOverlay",
    "UnloadContent",
    "transition",
]
