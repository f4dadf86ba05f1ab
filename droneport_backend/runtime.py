"""
Process lifecycle for anything that drives the dispatch core outside of
manage.py: bootstrap Django once, hand out store handles, drain connections
on shutdown.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Optional

import django
from django.db import DEFAULT_DB_ALIAS, connections

if TYPE_CHECKING:
    from dispatch.store import Store

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_MODULE = "droneport_backend.settings"


def bootstrap(settings_module: Optional[str] = None) -> None:
    """
    Point Django at the settings module and load the apps. Safe to call twice.
    """
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", settings_module or DEFAULT_SETTINGS_MODULE)
    django.setup()
    logger.info("Droneport runtime ready (settings=%s)", os.environ["DJANGO_SETTINGS_MODULE"])


@contextmanager
def open_store(using: str = DEFAULT_DB_ALIAS) -> Iterator[Store]:
    """
    Yields a Store bound to `using` and closes this thread's connection on exit.
    """
    # models are only importable once bootstrap() has run
    from dispatch.store import Store

    store = Store(using)
    try:
        yield store
    finally:
        store.close()


def shutdown() -> None:
    """
    Graceful shutdown: close every connection this process still holds.
    """
    connections.close_all()
    logger.info("Droneport runtime stopped, connections drained")
