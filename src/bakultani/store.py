import threading
from typing import Callable, List

from bakultani.actions import Action
from bakultani.models import AppState
from bakultani.reducer import reduce


Listener = Callable[[AppState, AppState], None]


class Store:
    """Holds the current AppState; every change goes through ``dispatch``.

    Listeners are called as ``listener(new_state, old_state)`` after each
    action that produced a new state. Dispatches coming from timer threads
    are serialized by a re-entrant lock, so a listener may dispatch again.
    """

    def __init__(self, initial_state: AppState, logger):
        self.logger = logger
        self._state = initial_state
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> AppState:
        with self._lock:
            old_state = self._state
            new_state = reduce(old_state, action)
            if new_state is old_state:
                self.logger.debug("%r left state unchanged", action)
                return old_state
            self._state = new_state
            self.logger.debug("Dispatched %r", action)
            for listener in list(self._listeners):
                try:
                    listener(new_state, old_state)
                except Exception:
                    self.logger.exception("State listener failed after %r", action)
            return new_state
