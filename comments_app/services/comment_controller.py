"""
Comment interaction controller for a single post view.

Owns the comment list state, the draft form fields and the submit flag, and
talks to the comment store and the name cache. Rendering is left entirely to
the caller, which reads the current state and listens for notifications.

    Idle -> Loading -> Loaded | LoadFailed        (attach / refresh)
    Ready -> Submitting -> Ready                  (submit)

Every store failure, raised or returned, ends in a stable state and is
reported as a CommentError; nothing from the store escapes to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Tuple

import anyio
import structlog

from comments_app import metrics
from comments_app.core.errors import (
    GENERIC_ERROR_MESSAGE,
    CommentError,
    CommentErrorKind,
    DraftValidationError,
    ValidationCode,
)
from comments_app.core.settings import S
from comments_app.models import Comment, NewCommentEntry
from comments_app.services.comment_store import CommentStore, CreateResult, ListResult
from comments_app.services.name_cache import NameCache

logger = structlog.get_logger(__name__)


class ListStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


class SubmitState(str, Enum):
    READY = "ready"
    SUBMITTING = "submitting"


class SubmitOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    INVALID = "invalid"
    FAILED = "failed"
    ALREADY_SUBMITTING = "already_submitting"


class NotificationKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    SUBMIT_SUCCEEDED = "submit_succeeded"
    SUBMIT_FAILED = "submit_failed"
    LOAD_FAILED = "load_failed"


@dataclass(frozen=True)
class ListState:
    status: ListStatus = ListStatus.IDLE
    # Loading and LoadFailed keep the last loaded list of the same attachment.
    comments: Tuple[Comment, ...] = ()
    error: Optional[CommentError] = None


@dataclass(frozen=True)
class Draft:
    commenter_name: str = ""
    content: str = ""


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    title: str
    description: Optional[str] = None
    error: Optional[CommentError] = None


@dataclass(frozen=True)
class SubmitResult:
    outcome: SubmitOutcome
    error: Optional[CommentError] = None
    # Set when the comment was created but the list reload afterwards failed.
    # If a refresh supersedes that reload, this reflects the list state when the
    # reload returns: still None while the newer load is in flight, and its
    # outcome then only arrives through the list state and notifications.
    refresh_error: Optional[CommentError] = None

    @property
    def ok(self) -> bool:
        return self.outcome is SubmitOutcome.SUCCEEDED


Listener = Callable[[Notification], None]


def validate_draft(
    commenter_name: Optional[str],
    content: Optional[str],
    *,
    max_author_len: Optional[int] = None,
    max_content_len: Optional[int] = None,
) -> Tuple[str, str]:
    """Return the trimmed (name, content) or raise DraftValidationError.

    Content is checked before the name, so an entirely empty form always
    reports EmptyContent.
    """
    name = (commenter_name or "").strip()
    body = (content or "").strip()
    if not body:
        raise DraftValidationError(ValidationCode.EMPTY_CONTENT)
    if not name:
        raise DraftValidationError(ValidationCode.EMPTY_AUTHOR)

    max_content = S.max_content_len if max_content_len is None else max_content_len
    max_author = S.max_author_len if max_author_len is None else max_author_len
    if max_content and len(body) > max_content:
        raise DraftValidationError(ValidationCode.CONTENT_TOO_LONG)
    if max_author and len(name) > max_author:
        raise DraftValidationError(ValidationCode.AUTHOR_TOO_LONG)
    return name, body


class CommentController:
    def __init__(
        self,
        store: CommentStore,
        name_cache: NameCache,
        *,
        name_cache_key: Optional[str] = None,
        max_author_len: Optional[int] = None,
        max_content_len: Optional[int] = None,
    ):
        self._store = store
        self._name_cache = name_cache
        self._name_cache_key = name_cache_key or S.name_cache_key
        self._max_author_len = max_author_len
        self._max_content_len = max_content_len

        self._post_id: Optional[str] = None
        self._list_state = ListState()
        self._submit_state = SubmitState.READY
        self._draft = Draft()
        self._listeners: List[Listener] = []

        # Bumped for every list request and on detach; older results are dropped.
        self._generation = 0
        # Bumped whenever the attached post changes.
        self._attachment = 0

    # -----------------------------
    # Read-only state
    # -----------------------------
    @property
    def post_id(self) -> Optional[str]:
        return self._post_id

    @property
    def list_state(self) -> ListState:
        return self._list_state

    @property
    def submit_state(self) -> SubmitState:
        return self._submit_state

    @property
    def draft(self) -> Draft:
        return self._draft

    @property
    def comment_count(self) -> int:
        return len(self._list_state.comments)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -----------------------------
    # Draft edits
    # -----------------------------
    def set_commenter_name(self, value: str) -> None:
        self._draft = replace(self._draft, commenter_name=value or "")

    def set_content(self, value: str) -> None:
        self._draft = replace(self._draft, content=value or "")

    # -----------------------------
    # Lifecycle
    # -----------------------------
    async def attach(self, post_id: str) -> ListState:
        if not post_id:
            raise ValueError("post_id is required")

        if post_id != self._post_id:
            self._attachment += 1
            self._post_id = post_id
            self._list_state = ListState()
            self._submit_state = SubmitState.READY
            self._draft = Draft()
        attachment = self._attachment

        state = await self._load()
        # A name typed while loading wins over the cached one.
        if attachment == self._attachment and not self._draft.commenter_name:
            cached = await self._load_cached_name()
            if cached and attachment == self._attachment and not self._draft.commenter_name:
                self._draft = replace(self._draft, commenter_name=cached)
        return state

    async def refresh(self) -> ListState:
        if self._post_id is None:
            raise RuntimeError("controller is not attached to a post")
        return await self._load()

    def detach(self) -> None:
        self._generation += 1
        self._attachment += 1
        self._post_id = None
        self._list_state = ListState()
        self._submit_state = SubmitState.READY
        self._draft = Draft()

    # -----------------------------
    # Submission
    # -----------------------------
    async def submit(self) -> SubmitResult:
        if self._post_id is None:
            raise RuntimeError("controller is not attached to a post")

        if self._submit_state is SubmitState.SUBMITTING:
            metrics.record_submission(SubmitOutcome.ALREADY_SUBMITTING.value)
            return SubmitResult(SubmitOutcome.ALREADY_SUBMITTING)

        try:
            author, content = validate_draft(
                self._draft.commenter_name,
                self._draft.content,
                max_author_len=self._max_author_len,
                max_content_len=self._max_content_len,
            )
        except DraftValidationError as exc:
            error = CommentError.validation(exc.code)
            metrics.record_submission(SubmitOutcome.INVALID.value)
            self._notify(Notification(NotificationKind.VALIDATION_ERROR, error.message, error=error))
            return SubmitResult(SubmitOutcome.INVALID, error=error)

        post_id = self._post_id
        attachment = self._attachment
        self._submit_state = SubmitState.SUBMITTING
        try:
            result = await self._create(NewCommentEntry(post_id=post_id, author=author, content=content))
            if result.error is not None:
                error = CommentError(CommentErrorKind.STORE_WRITE, result.error)
                logger.warning("comment_submit_failed", post_id=post_id, error=result.error)
                metrics.record_submission(SubmitOutcome.FAILED.value)
                self._notify(Notification(
                    NotificationKind.SUBMIT_FAILED,
                    "Error submitting comment",
                    result.error,
                    error,
                ))
                return SubmitResult(SubmitOutcome.FAILED, error=error)

            if attachment == self._attachment:
                self._draft = replace(self._draft, content="")
            await self._cache_name(author)

            logger.info("comment_submitted", post_id=post_id)
            metrics.record_submission(SubmitOutcome.SUCCEEDED.value)
            self._notify(Notification(
                NotificationKind.SUBMIT_SUCCEEDED,
                "Comment submitted successfully",
                "Your comment has been added",
            ))

            refresh_error = None
            if attachment == self._attachment:
                state = await self._load()
                if state.status is ListStatus.LOAD_FAILED and state.error is not None:
                    refresh_error = CommentError(CommentErrorKind.REFRESH_AFTER_WRITE, state.error.message)
                    metrics.record_refresh_after_write_failure()
            return SubmitResult(SubmitOutcome.SUCCEEDED, refresh_error=refresh_error)
        finally:
            if attachment == self._attachment:
                self._submit_state = SubmitState.READY

    # -----------------------------
    # Internals
    # -----------------------------
    async def _load(self) -> ListState:
        post_id = self._post_id
        self._generation += 1
        generation = self._generation
        self._list_state = ListState(ListStatus.LOADING, self._list_state.comments)

        try:
            result = await self._store.list(post_id)
        except Exception:
            logger.exception("comment_list_raised", post_id=post_id)
            result = ListResult(error=GENERIC_ERROR_MESSAGE)

        if generation != self._generation:
            metrics.record_list_load("stale")
            logger.debug("comment_list_superseded", post_id=post_id)
            return self._list_state

        if result.error is not None:
            error = CommentError(CommentErrorKind.STORE_READ, result.error)
            self._list_state = ListState(ListStatus.LOAD_FAILED, self._list_state.comments, error)
            logger.warning("comment_list_failed", post_id=post_id, error=result.error)
            metrics.record_list_load("failed")
            self._notify(Notification(NotificationKind.LOAD_FAILED, "Error loading comments", result.error, error))
            return self._list_state

        comments = tuple(c for c in result.comments if c.post_id == post_id)
        self._list_state = ListState(ListStatus.LOADED, comments)
        logger.debug("comments_loaded", post_id=post_id, count=len(comments))
        metrics.record_list_load("loaded")
        return self._list_state

    async def _create(self, entry: NewCommentEntry) -> CreateResult:
        try:
            return await self._store.create(entry)
        except Exception:
            logger.exception("comment_create_raised", post_id=entry.post_id)
            return CreateResult(error=GENERIC_ERROR_MESSAGE)

    async def _load_cached_name(self) -> Optional[str]:
        try:
            return await anyio.to_thread.run_sync(self._name_cache.get, self._name_cache_key)
        except Exception as exc:
            logger.warning("name_cache_read_failed", error=str(exc))
            return None

    async def _cache_name(self, name: str) -> None:
        try:
            await anyio.to_thread.run_sync(self._name_cache.set, self._name_cache_key, name)
        except Exception as exc:
            logger.warning("name_cache_write_failed", error=str(exc))

    def _notify(self, notification: Notification) -> None:
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("comment_listener_failed", kind=notification.kind.value)
