"""
Named-event subscriber registry.

This module provides EventEmitter, the fan-out mechanism WsConnection uses to
notify subscribers of ``open``, ``close``, ``error`` and ``payload`` events.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..config import DEFAULT_MAX_LISTENERS
from ..logger import get_logger

logger = get_logger("EVENTS")

Listener = Callable[..., Any]


@dataclass
class _Registration:
    callback: Listener
    once: bool = False


class EventEmitter:
    """
    Registry of listeners keyed by event name.

    Listeners are called in registration order with the arguments passed to
    emit(). A listener may be a plain function or a coroutine function; when
    it returns an awaitable, that awaitable is scheduled as a task on the
    running loop so emit() itself never suspends.

    Registration is idempotent per listener: adding the same (or an equal)
    callable twice to one event keeps a single registration. A listener
    registered while an emit() is in progress is not called by that emit().

    Listener failures are logged and never propagate to the emitter, so one
    broken subscriber cannot break the connection lifecycle.

    Parameters
    ----------
    max_listeners : int, optional
        Per-event listener count above which a warning is logged (default
        10). This is a diagnostic only, never a hard limit. 0 disables it.

    Examples
    --------
    >>> events = EventEmitter()
    >>> events.on("payload", lambda message: print(message["id"]))
    >>> events.emit("payload", {"id": 1})
    1
    True
    """

    def __init__(self, max_listeners: int = DEFAULT_MAX_LISTENERS) -> None:
        self._listeners: dict[str, list[_Registration]] = {}
        self._max_listeners = max_listeners
        self._warned: set[str] = set()
        self._tasks: set[asyncio.Task[Any]] = set()

    def get_max_listeners(self) -> int:
        return self._max_listeners

    def set_max_listeners(self, max_listeners: int) -> None:
        if max_listeners < 0:
            raise ValueError(
                f"max_listeners must be non-negative, got {max_listeners}"
            )
        self._max_listeners = max_listeners

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def listeners(self, event: str) -> list[Listener]:
        return [registration.callback for registration in self._listeners.get(event, [])]

    def on(self, event: str, listener: Listener) -> None:
        """Register ``listener`` for every future ``event``."""
        self._add(event, listener, once=False)

    def once(self, event: str, listener: Listener) -> None:
        """Register ``listener`` for the next ``event`` only."""
        self._add(event, listener, once=True)

    def off(self, event: str, listener: Listener) -> bool:
        """
        Unregister ``listener`` from ``event``.

        Returns
        -------
        bool
            True if the listener was registered, False otherwise. Removing an
            unknown listener is a no-op.
        """
        registrations = self._listeners.get(event)
        if not registrations:
            return False
        for registration in registrations:
            if registration.callback == listener:
                registrations.remove(registration)
                if not registrations:
                    del self._listeners[event]
                return True
        return False

    remove_listener = off

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener currently registered for ``event``.

        Returns
        -------
        bool
            True if the event had listeners, False otherwise.
        """
        registrations = list(self._listeners.get(event, []))
        if not registrations:
            return False

        for registration in registrations:
            if registration.once:
                self.off(event, registration.callback)
            self._call(event, registration.callback, args)
        return True

    def _add(self, event: str, listener: Listener, once: bool) -> None:
        if not callable(listener):
            raise TypeError(f"Listener for '{event}' must be callable, got {listener!r}")

        registrations = self._listeners.setdefault(event, [])
        if any(registration.callback == listener for registration in registrations):
            return
        registrations.append(_Registration(listener, once))

        if (
            self._max_listeners > 0
            and len(registrations) > self._max_listeners
            and event not in self._warned
        ):
            self._warned.add(event)
            logger.warning(
                "Possible listener leak detected: %d '%s' listeners added "
                "(max_listeners=%d). Use set_max_listeners() to increase the limit.",
                len(registrations),
                event,
                self._max_listeners,
            )

    def _call(self, event: str, listener: Listener, args: tuple[Any, ...]) -> None:
        listener_name = getattr(listener, "__name__", repr(listener))
        try:
            result = listener(*args)
        except Exception as e:
            logger.error(
                f"Listener {listener_name} for '{event}' failed: {type(e).__name__}: {e}",
                exc_info=True,
            )
            return

        if inspect.isawaitable(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # No running loop to schedule the listener on
                if inspect.iscoroutine(result):
                    result.close()
                logger.error(
                    f"Listener {listener_name} for '{event}' returned an awaitable "
                    f"but no event loop is running"
                )
                return
            task = asyncio.ensure_future(result, loop=loop)
            self._tasks.add(task)
            task.add_done_callback(self._make_done_callback(event, listener_name))

    def _make_done_callback(
        self, event: str, listener_name: str
    ) -> Callable[[asyncio.Task[Any]], None]:
        def _done(task: asyncio.Task[Any]) -> None:
            self._tasks.discard(task)
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                logger.error(
                    f"Listener {listener_name} for '{event}' failed: "
                    f"{type(error).__name__}: {error}",
                    exc_info=error,
                )

        return _done
