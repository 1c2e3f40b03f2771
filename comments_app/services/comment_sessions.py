from __future__ import annotations

from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Tuple

import structlog

from comments_app import metrics
from comments_app.core.settings import S
from comments_app.core.time import now_ts
from comments_app.services.comment_controller import CommentController, Notification
from comments_app.services.comment_store import CommentStore, DynamoCommentStore
from comments_app.services.name_cache import DynamoNameCache, NameCache

logger = structlog.get_logger(__name__)


@dataclass
class CommentSession:
    client_id: str
    controller: CommentController
    pending: Deque[Notification] = field(default_factory=deque)
    last_seen_at: int = 0

    def drain(self) -> List[Notification]:
        out = list(self.pending)
        self.pending.clear()
        return out


class CommentSessionRegistry:
    """
    One controller per (client_id, post_id), held in process memory.

    Client ids are unauthenticated, so the registry is bounded: sessions idle
    longer than idle_seconds are dropped on access, and past max_sessions the
    least recently used one is dropped. Dropped sessions are detached.
    """

    def __init__(
        self,
        store_factory: Callable[[], CommentStore] = DynamoCommentStore,
        cache_factory: Callable[[str], NameCache] = DynamoNameCache,
        *,
        max_pending: Optional[int] = None,
        max_sessions: Optional[int] = None,
        idle_seconds: Optional[int] = None,
    ):
        self._store_factory = store_factory
        self._cache_factory = cache_factory
        self._max_pending = S.max_pending_notifications if max_pending is None else max_pending
        self._max_sessions = S.max_comment_sessions if max_sessions is None else max_sessions
        self._idle_seconds = S.comment_session_idle_seconds if idle_seconds is None else idle_seconds
        self._store: Optional[CommentStore] = None
        self._sessions: "OrderedDict[Tuple[str, str], CommentSession]" = OrderedDict()

    @property
    def store(self) -> CommentStore:
        if self._store is None:
            self._store = self._store_factory()
        return self._store

    def _expired(self, session: CommentSession, ts: int) -> bool:
        return bool(self._idle_seconds) and (ts - session.last_seen_at) > self._idle_seconds

    def _evict(self, key: Tuple[str, str], reason: str) -> None:
        session = self._sessions.pop(key, None)
        if session is None:
            return
        session.controller.detach()
        logger.info("comment_session_evicted", post_id=key[1], reason=reason)

    def _evict_idle(self, ts: int) -> None:
        # Oldest first; stop at the first session still in use.
        for key, session in list(self._sessions.items()):
            if not self._expired(session, ts):
                break
            self._evict(key, "idle")

    def get(self, client_id: str, post_id: str) -> Optional[CommentSession]:
        ts = now_ts()
        self._evict_idle(ts)
        key = (client_id, post_id)
        session = self._sessions.get(key)
        if session is not None:
            session.last_seen_at = ts
            self._sessions.move_to_end(key)
        metrics.set_attached_viewers(len(self._sessions))
        return session

    def get_or_create(self, client_id: str, post_id: str) -> CommentSession:
        session = self.get(client_id, post_id)
        if session is not None:
            return session

        controller = CommentController(self.store, self._cache_factory(client_id))
        session = CommentSession(
            client_id=client_id,
            controller=controller,
            pending=deque(maxlen=self._max_pending),
            last_seen_at=now_ts(),
        )
        controller.add_listener(session.pending.append)
        self._sessions[(client_id, post_id)] = session
        while self._max_sessions and len(self._sessions) > self._max_sessions:
            oldest = next(iter(self._sessions))
            self._evict(oldest, "capacity")
        metrics.set_attached_viewers(len(self._sessions))
        return session

    def drop(self, client_id: str, post_id: str) -> Optional[CommentSession]:
        session = self._sessions.pop((client_id, post_id), None)
        if session is not None:
            session.controller.detach()
            metrics.set_attached_viewers(len(self._sessions))
        return session

    def __len__(self) -> int:
        return len(self._sessions)


sessions = CommentSessionRegistry()
