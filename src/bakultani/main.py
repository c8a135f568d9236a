import logging
import threading
from dataclasses import dataclass

from bakultani.connectivity import ConnectivityMonitor, PollingConnectivity
from bakultani.reports import dashboard, warehouse_summary
from bakultani.services import Services
from bakultani.storage import JsonFileStore, Storage
from bakultani.store import Store
from bakultani.utils import (
    APP_NAME,
    APP_VERSION,
    SingleInstanceLock,
    format_exception,
    get_app_root,
    get_backups_dir,
    get_data_dir,
    setup_logging,
)


@dataclass
class App:
    store: Store
    storage: Storage
    services: Services
    monitor: ConnectivityMonitor
    connectivity: object

    def stop(self) -> None:
        self.monitor.stop()
        self.connectivity.stop()


def bootstrap(app_root: str, connectivity, logger, scheduler=None) -> App:
    """Load persisted state and wire store, persistence and connectivity."""
    storage = Storage(JsonFileStore(get_data_dir(app_root)), logger, backups_dir=get_backups_dir(app_root))
    store = Store(storage.load(is_online=connectivity.is_online()), logger)
    storage.attach(store)
    monitor = ConnectivityMonitor(store, connectivity, logger, scheduler=scheduler)
    monitor.start()
    connectivity.start()
    services = Services(store, storage, logger)
    return App(store=store, storage=storage, services=services, monitor=monitor, connectivity=connectivity)


def run_until_stopped(app: App, logger, stop_event: threading.Event, poll: float = 1.0) -> None:
    """Block until ``stop_event`` is set or Ctrl+C, then stop the app."""
    try:
        while not stop_event.wait(poll):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        app.stop()


def main():
    app_root = get_app_root()
    logger = setup_logging(app_root, level=logging.INFO)
    try:
        with SingleInstanceLock(app_root):
            app = bootstrap(app_root, PollingConnectivity(), logger)
            state = app.store.state
            summary = dashboard(state)
            logger.info("%s v%s ready (%s)", APP_NAME, APP_VERSION, "online" if state.is_online else "offline")
            logger.info(
                "%d items, %s in stock, %d low on stock",
                summary.total_items,
                summary.total_stock,
                summary.low_stock_count,
            )
            for wh in warehouse_summary(state):
                logger.info("Warehouse %s: %d items, %s units", wh.name, wh.items_count, wh.total_stock)
            run_until_stopped(app, logger, threading.Event())
    except Exception as e:
        logger.error("Fatal error: %s", format_exception(e))
        raise


if __name__ == '__main__':
    main()
