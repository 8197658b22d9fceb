"""
Document repository - load/save/subscribe by logical key.

The planner never talks to the database directly: it reads whole documents
at the start of every operation and writes whole documents back. There is
no locking. Two writers racing on the same key both succeed and the later
save replaces the earlier one wholesale.
"""

import copy
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from fastapi import Depends
from sqlmodel import Session

from clubplanner.database import get_session
from clubplanner.models.club_document import ClubDocument

logger = logging.getLogger(__name__)

PLAYERS = "players"
COURTS = "courts"
MATCHES = "matches"
SCHEDULED = "scheduled"
SETTINGS = "settings"
PLANNING_TEMPLATES = "planning_templates"

Listener = Callable[[Any], None]


class ChangeFeed:
    """In-process push notifications: every save publishes the new document."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, key: str, callback: Listener) -> Callable[[], None]:
        self._listeners[key].append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners[key]:
                self._listeners[key].remove(callback)

        return unsubscribe

    def publish(self, key: str, value: Any) -> None:
        for callback in list(self._listeners[key]):
            callback(copy.deepcopy(value))


change_feed = ChangeFeed()


class ClubRepository(ABC):
    @abstractmethod
    def load(self, key: str, default: Any = None) -> Any:
        """Return a private copy of the document, or default when absent."""

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """Replace the whole document."""

    @abstractmethod
    def subscribe(self, key: str, callback: Listener) -> Callable[[], None]:
        """Register for replacement notifications; returns an unsubscribe callable."""


class DocumentRepository(ClubRepository):
    """ClubRepository over the club_document table."""

    def __init__(self, session: Session, feed: ChangeFeed = change_feed):
        self.session = session
        self.feed = feed

    def load(self, key: str, default: Any = None) -> Any:
        # populate_existing: never serve a document cached by this session
        document = self.session.get(ClubDocument, key, populate_existing=True)
        if document is None or document.value is None:
            return copy.deepcopy(default)
        return copy.deepcopy(document.value)

    def save(self, key: str, value: Any) -> None:
        document = self.session.get(ClubDocument, key)
        if document is None:
            document = ClubDocument(key=key)
        document.value = copy.deepcopy(value)
        document.updated_at = datetime.now(timezone.utc)
        self.session.add(document)
        self.session.commit()
        logger.debug("Saved document %s", key)
        self.feed.publish(key, value)

    def subscribe(self, key: str, callback: Listener) -> Callable[[], None]:
        return self.feed.subscribe(key, callback)


def get_repository(session: Session = Depends(get_session)) -> ClubRepository:
    return DocumentRepository(session)
