"""
Lightweight in-process event system.

Routine writes emit events here so that anything caching derived progress
has an explicit invalidation signal. Handlers run synchronously; a failing
handler is logged and never breaks the write that emitted the event.
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

# Event registry: event_name -> list of handlers
_event_handlers: Dict[str, List[Callable]] = {}


def subscribe(event_name: str, handler: Callable):
    """
    Subscribe a handler function to an event.

    Example:
        def on_activated(owner_id: str, document_id: str, version: int):
            ...

        subscribe(EVENT_ROUTINE_DOCUMENT_ACTIVATED, on_activated)
    """
    if event_name not in _event_handlers:
        _event_handlers[event_name] = []

    _event_handlers[event_name].append(handler)
    logger.debug(f"Subscribed handler to event: {event_name}")


def unsubscribe(event_name: str, handler: Callable):
    """Remove a previously subscribed handler. Unknown handlers are ignored."""
    handlers = _event_handlers.get(event_name)
    if handlers and handler in handlers:
        handlers.remove(handler)


def emit(event_name: str, **kwargs):
    """
    Emit an event, calling all subscribed handlers.

    Example:
        emit(EVENT_ROUTINE_DEFINITIONS_UPDATED, owner_id=str(owner_id))
    """
    if event_name not in _event_handlers:
        return

    for handler in list(_event_handlers[event_name]):
        try:
            handler(**kwargs)
        except Exception as e:
            logger.error(f"Error in event handler for {event_name}: {e}", exc_info=True)


# Routine engine event names
EVENT_ROUTINE_DOCUMENT_DRAFT_SAVED = 'routine_document.draft_saved'
EVENT_ROUTINE_DOCUMENT_ACTIVATED = 'routine_document.activated'
EVENT_ROUTINE_DOCUMENT_DELETED = 'routine_document.deleted'
EVENT_ROUTINE_DEFINITIONS_UPDATED = 'routine_definitions.updated'
