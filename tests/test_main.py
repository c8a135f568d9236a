import os
import logging
import tempfile
import threading
import shutil

from bakultani.connectivity import ManualConnectivity, ManualScheduler
from bakultani.main import bootstrap, run_until_stopped
from bakultani.models import SyncStatus


def test_bootstrap_wires_persistence_and_connectivity():
    root = tempfile.mkdtemp(prefix='bakultani_main_')
    try:
        logger = logging.getLogger('t')
        source = ManualConnectivity(online=False)
        scheduler = ManualScheduler()
        app = bootstrap(root, source, logger, scheduler=scheduler)
        assert app.store.state.is_online is False
        cat = app.services.add_category('Pupuk')
        assert cat.sync_status == SyncStatus.PENDING
        assert os.path.exists(os.path.join(root, 'data', 'bakulTaniState.json'))

        source.set_online(True)
        scheduler.advance(1.0)
        assert app.store.state.categories[-1].sync_status == SyncStatus.SYNCED
        app.stop()

        again = bootstrap(root, ManualConnectivity(online=True), logger, scheduler=ManualScheduler())
        assert again.store.state.categories == app.store.state.categories
        assert again.store.state.notifications == ()
        again.stop()
    finally:
        shutil.rmtree(root)


class RecordingConnectivity(ManualConnectivity):
    def __init__(self, online=True):
        super().__init__(online=online)
        self.calls = []

    def start(self):
        self.calls.append('start')

    def stop(self):
        self.calls.append('stop')


class InterruptedEvent:
    def wait(self, timeout=None):
        raise KeyboardInterrupt


def test_run_until_stopped_shuts_down_source_and_monitor():
    root = tempfile.mkdtemp(prefix='bakultani_main_')
    try:
        logger = logging.getLogger('t')
        source = RecordingConnectivity(online=True)
        app = bootstrap(root, source, logger, scheduler=ManualScheduler())
        assert source.calls == ['start']

        stop_event = threading.Event()
        timer = threading.Timer(0.05, stop_event.set)
        timer.start()
        run_until_stopped(app, logger, stop_event, poll=0.01)
        timer.join()
        assert source.calls == ['start', 'stop']
        # monitor detached: transitions no longer reach the store
        source.set_online(False)
        assert app.store.state.is_online is True
    finally:
        shutil.rmtree(root)


def test_ctrl_c_stops_the_app():
    root = tempfile.mkdtemp(prefix='bakultani_main_')
    try:
        logger = logging.getLogger('t')
        source = RecordingConnectivity(online=True)
        app = bootstrap(root, source, logger, scheduler=ManualScheduler())
        run_until_stopped(app, logger, InterruptedEvent())
        assert source.calls == ['start', 'stop']
    finally:
        shutil.rmtree(root)
