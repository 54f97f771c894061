"""Revision lifecycle events for the search index."""

import enum
import logging
from typing import Callable

from sqlalchemy import event

from src.db.models import Revision

logger = logging.getLogger(__name__)


class RevisionEvent(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    DESTROYED = "destroyed"


RevisionListener = Callable[[RevisionEvent, Revision], None]

_listeners: list[RevisionListener] = []


def add_listener(listener: RevisionListener):
    """Register a callback run inside the flush that persisted the change."""
    _listeners.append(listener)


def remove_listener(listener: RevisionListener):
    _listeners.remove(listener)


def log_listener(kind: RevisionEvent, revision: Revision):
    logger.debug(f"Revision {revision.id} {kind.value}; search index update pending")


def _emit(kind: RevisionEvent, revision: Revision):
    for listener in list(_listeners):
        listener(kind, revision)


@event.listens_for(Revision, "after_insert")
def _after_insert(mapper, connection, target):
    _emit(RevisionEvent.CREATED, target)


@event.listens_for(Revision, "after_update")
def _after_update(mapper, connection, target):
    _emit(RevisionEvent.UPDATED, target)


@event.listens_for(Revision, "after_delete")
def _after_delete(mapper, connection, target):
    _emit(RevisionEvent.DESTROYED, target)


add_listener(log_listener)
