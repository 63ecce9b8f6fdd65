"""
JRadiance - Cache Revalidation Hook
====================================
Mutations call revalidate_path() after they succeed so cached renderings of
admin/shop pages can be invalidated. The cache itself lives outside this
service; listeners are registered by whatever fronts it (CDN purge, ISR
webhook, ...).
"""

import logging
from typing import Callable, List

logger = logging.getLogger("jradiance.revalidation")

_listeners: List[Callable[[str], None]] = []


def register_listener(listener: Callable[[str], None]) -> None:
    if listener not in _listeners:
        _listeners.append(listener)


def unregister_listener(listener: Callable[[str], None]) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def revalidate_path(*paths: str) -> None:
    """Notify every listener. A failing listener never fails the mutation."""
    for path in paths:
        logger.debug(f"Revalidating {path}")
        for listener in list(_listeners):
            try:
                listener(path)
            except Exception:
                logger.warning(f"Revalidation listener failed for {path}", exc_info=True)
