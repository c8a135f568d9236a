"""Offline-first inventory ledger for Bakul Tani."""

from bakultani.utils import APP_NAME, APP_VERSION

__version__ = APP_VERSION

__all__ = ["APP_NAME", "__version__"]
