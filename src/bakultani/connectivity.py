"""Connectivity sources and the monitor that turns their signal into actions.

The monitor dispatches ``SET_ONLINE_STATUS`` on every transition.  Going
online also schedules a reconciliation (``SYNC_DATA`` plus a success
notification) after a short delay.  Each transition bumps a generation
token; a scheduled reconciliation only runs if its token is still current,
so a quick offline/online flip never produces a stale sync.
"""

import socket
import threading
from typing import Callable, List, Optional

from bakultani.actions import Action, ActionType
from bakultani.models import Notification, NotificationType
from bakultani.utils import SYNC_DELAY_SECONDS, new_id


ConnectivityCallback = Callable[[bool], None]

OFFLINE_MESSAGE = "Anda sedang offline. Perubahan akan disimpan lokal (pending)."
SYNCED_MESSAGE = "Koneksi kembali! Data telah disinkronkan."


class ManualConnectivity:
    """Connectivity flag set by the caller."""

    def __init__(self, online: bool = True):
        self._online = online
        self._callbacks: List[ConnectivityCallback] = []

    def is_online(self) -> bool:
        return self._online

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def on_change(self, callback: ConnectivityCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def detach() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return detach

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        for callback in list(self._callbacks):
            callback(online)


class PollingConnectivity(ManualConnectivity):
    """Checks a TCP endpoint every ``interval`` seconds and reports transitions.

    A successful ``socket.create_connection`` to ``host:port`` within
    ``timeout`` seconds counts as online.
    """

    def __init__(self, host: str = "1.1.1.1", port: int = 53, interval: float = 5.0, timeout: float = 2.0):
        self.host = host
        self.port = port
        self.interval = interval
        self.timeout = timeout
        self._timer: Optional[threading.Timer] = None
        self._stopped = True
        self._timer_lock = threading.Lock()
        super().__init__(online=self.check())

    def check(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError:
            return False

    def start(self) -> None:
        with self._timer_lock:
            self._stopped = False
        self._schedule()

    def stop(self) -> None:
        with self._timer_lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self) -> None:
        with self._timer_lock:
            if self._stopped:
                return
            self._timer = threading.Timer(self.interval, self._tick)
            self._timer.daemon = True
            self._timer.start()

    def _tick(self) -> None:
        self.set_online(self.check())
        self._schedule()


class ScheduledTask:
    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel

    def cancel(self) -> None:
        self._cancel()


class TimerScheduler:
    """Runs callbacks on ``threading.Timer`` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return ScheduledTask(timer.cancel)


class ManualScheduler:
    """Scheduler driven by ``advance``; nothing runs until time is advanced."""

    def __init__(self):
        self.now = 0.0
        self._pending: List[list] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        entry = [self.now + delay, callback, False]
        self._pending.append(entry)

        def cancel() -> None:
            entry[2] = True

        return ScheduledTask(cancel)

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._pending if not entry[2])

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [e for e in self._pending if e[0] <= self.now]
        self._pending = [e for e in self._pending if e[0] > self.now]
        for due_at, callback, cancelled in sorted(due, key=lambda e: e[0]):
            if not cancelled:
                callback()


class ConnectivityMonitor:
    def __init__(self, store, source, logger, scheduler=None, sync_delay: float = SYNC_DELAY_SECONDS):
        self.store = store
        self.source = source
        self.logger = logger
        self.scheduler = scheduler or TimerScheduler()
        self.sync_delay = sync_delay
        self._token = 0
        self._lock = threading.Lock()
        self._pending: Optional[ScheduledTask] = None
        self._detach: Optional[Callable[[], None]] = None

    def start(self) -> None:
        self._detach = self.source.on_change(self.handle_change)

    def stop(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
        with self._lock:
            self._token += 1
            self._cancel_pending()

    def handle_change(self, online: bool) -> None:
        with self._lock:
            self._token += 1
            token = self._token
            self._cancel_pending()
        if online:
            self.logger.info("Connectivity restored, sync scheduled in %.1fs", self.sync_delay)
            self.store.dispatch(Action(ActionType.SET_ONLINE_STATUS, True))
            task = self.scheduler.call_later(self.sync_delay, lambda: self._complete_sync(token))
            with self._lock:
                if token == self._token:
                    self._pending = task
                else:
                    task.cancel()
        else:
            self.logger.warning("Connectivity lost, changes will be kept as pending")
            self.store.dispatch(Action(ActionType.SET_ONLINE_STATUS, False))
            self._notify(OFFLINE_MESSAGE, NotificationType.WARNING, "notif_offline_")

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _complete_sync(self, token: int) -> None:
        with self._lock:
            if token != self._token:
                self.logger.debug("Dropping stale sync (token %d, current %d)", token, self._token)
                return
            self._pending = None
        self.store.dispatch(Action(ActionType.SYNC_DATA))
        self._notify(SYNCED_MESSAGE, NotificationType.SUCCESS, "notif_sync_")
        self.logger.info("Pending categories and warehouses synced")

    def _notify(self, message: str, kind: NotificationType, prefix: str) -> None:
        self.store.dispatch(Action(ActionType.ADD_NOTIFICATION, Notification(id=new_id(prefix), message=message, type=kind)))
