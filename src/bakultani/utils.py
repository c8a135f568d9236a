import os
import sys
import time
import logging
import tempfile
import threading
import contextlib
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


APP_NAME = "Bakul Tani"
APP_VERSION = "1.0.0"

STORAGE_KEY = "bakulTaniState"
SYNC_DELAY_SECONDS = 1.0
BACKUP_KEEP = 20


def get_app_root() -> str:
    """Return the directory where data/logs/backups live.

    - Frozen (PyInstaller): folder of the executable
    - Development: project root (parent of src)
    """
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return os.path.dirname(sys.executable)
    return os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _app_subdir(app_root: str, name: str) -> str:
    path = os.path.join(app_root, name)
    ensure_dir(path)
    return path


def get_logs_dir(app_root: str) -> str:
    return _app_subdir(app_root, "logs")


def get_backups_dir(app_root: str) -> str:
    return _app_subdir(app_root, "backups")


def get_data_dir(app_root: str) -> str:
    """Holds one JSON file per persisted key."""
    return _app_subdir(app_root, "data")


def get_lock_file_path(app_root: str) -> str:
    return os.path.join(app_root, "app.lock")


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(app_root: str, level: int = logging.INFO) -> logging.Logger:
    """Log to a rotating ``logs/app.log`` and to the console."""
    log_file = os.path.join(get_logs_dir(app_root), "app.log")
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    logger = logging.getLogger("bakultani")
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in (
        RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5, encoding="utf-8"),
        logging.StreamHandler(),
    ):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to %s", log_file)
    return logger


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp as written by the app (trailing ``Z`` allowed).

    Naive values are taken as UTC.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_id_lock = threading.Lock()
_last_id_ms = 0


def new_id(prefix: str = "") -> str:
    """Millisecond timestamp id, bumped so ids stay unique within the process."""
    global _last_id_ms
    with _id_lock:
        ms = int(time.time() * 1000)
        if ms <= _last_id_ms:
            ms = _last_id_ms + 1
        _last_id_ms = ms
    return f"{prefix}{ms}"


def atomic_write_text(target_path: str, content: str) -> None:
    """Write ``content`` to a sibling temp file, then swap it in with ``os.replace``."""
    dirname = os.path.dirname(target_path)
    ensure_dir(dirname)
    fd, tmp_path = tempfile.mkstemp(dir=dirname, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_path, target_path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(tmp_path)
        raise


class SingleInstanceLock:
    """Exclusive ``app.lock`` holding the owner's PID.

    ``acquire`` raises RuntimeError while another instance holds the file.
    Also usable as a context manager.
    """

    def __init__(self, app_root: str):
        self.lock_path = get_lock_file_path(app_root)
        self.fd: Optional[int] = None

    def acquire(self) -> None:
        try:
            self.fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            raise RuntimeError(f"Another instance appears to be running. If not, delete {self.lock_path}.") from None
        os.write(self.fd, str(os.getpid()).encode("utf-8"))

    def release(self) -> None:
        # Only the holder removes the file
        if self.fd is None:
            return
        fd, self.fd = self.fd, None
        try:
            os.close(fd)
            os.remove(self.lock_path)
        except OSError as e:
            logging.getLogger("bakultani").warning("Could not release %s: %s", self.lock_path, e)

    def __enter__(self) -> "SingleInstanceLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def format_exception(e: BaseException) -> str:
    return "".join(traceback.format_exception(type(e), e, e.__traceback__))
