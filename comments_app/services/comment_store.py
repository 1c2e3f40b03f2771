from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import anyio
import structlog
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from pydantic import ValidationError

from comments_app.core.errors import ddb_error_message
from comments_app.core.settings import S
from comments_app.core.time import now_iso
from comments_app.models import Comment, NewCommentEntry

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ListResult:
    comments: List[Comment] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class CreateResult:
    error: Optional[str] = None


class CommentStore(Protocol):
    """Remote authority for comments. Ordering and persistence belong to the store."""

    async def list(self, post_id: str) -> ListResult: ...

    async def create(self, entry: NewCommentEntry) -> CreateResult: ...


# -----------------------------
# DynamoDB Key builders
# -----------------------------
def pk_post_comments(post_id: str) -> str:
    return f"POST#{post_id}#COMMENTS"


def sk_comment(created_at: str, comment_id: str) -> str:
    return f"{created_at}#CMT#{comment_id}"


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def item_to_comment(item: Dict[str, Any]) -> Comment:
    return Comment.model_validate(item)


class DynamoCommentStore:
    """
    Comments live in one partition per post: PK = POST#<post_id>#COMMENTS,
    SK = <created_at>#CMT#<comment_id>, so a partition query returns them in
    creation order. When an index is configured it is keyed on GSI2PK/GSI2SK
    with the same values.
    """

    def __init__(
        self,
        table: Any = None,
        *,
        index_name: Optional[str] = None,
        newest_first: Optional[bool] = None,
        limit: Optional[int] = None,
    ):
        if table is None:
            from comments_app.core.tables import T

            table = T.comments
        self._table = table
        self._index_name = S.comments_index_name if index_name is None else index_name
        self._newest_first = S.comments_newest_first if newest_first is None else newest_first
        self._limit = S.comments_list_limit if limit is None else limit

    def _query(self, post_id: str) -> List[Dict[str, Any]]:
        key_attr = "GSI2PK" if self._index_name else "PK"
        kwargs: Dict[str, Any] = dict(
            KeyConditionExpression=Key(key_attr).eq(pk_post_comments(post_id)),
            ScanIndexForward=not self._newest_first,
            Limit=self._limit,
        )
        if self._index_name:
            kwargs["IndexName"] = self._index_name
        resp = self._table.query(**kwargs)
        return list(resp.get("Items", []))

    def _put(self, item: Dict[str, Any]) -> None:
        self._table.put_item(Item=item, ConditionExpression="attribute_not_exists(PK)")

    async def list(self, post_id: str) -> ListResult:
        try:
            items = await anyio.to_thread.run_sync(self._query, post_id)
        except ClientError as exc:
            logger.warning("comment_query_failed", post_id=post_id, error=ddb_error_message(exc))
            return ListResult(error=ddb_error_message(exc))

        comments: List[Comment] = []
        for it in items:
            if it.get("Entity", "Comment") != "Comment" or it.get("post_id") != post_id:
                continue
            try:
                comments.append(item_to_comment(it))
            except ValidationError:
                logger.warning("comment_item_malformed", post_id=post_id, sk=it.get("SK"))
        return ListResult(comments=comments)

    async def create(self, entry: NewCommentEntry) -> CreateResult:
        comment_id = new_id("cmt")
        created_at = now_iso()
        item = {
            "PK": pk_post_comments(entry.post_id),
            "SK": sk_comment(created_at, comment_id),
            "Entity": "Comment",
            "comment_id": comment_id,
            "post_id": entry.post_id,
            "author": entry.author,
            "content": entry.content,
            "created_at": created_at,
        }
        if self._index_name:
            item["GSI2PK"] = item["PK"]
            item["GSI2SK"] = item["SK"]
        try:
            await anyio.to_thread.run_sync(self._put, item)
        except ClientError as exc:
            logger.warning("comment_put_failed", post_id=entry.post_id, error=ddb_error_message(exc))
            return CreateResult(error=ddb_error_message(exc))
        return CreateResult()


class MemoryCommentStore:
    """In-process store with the same contract, for local runs and tests."""

    def __init__(self, *, newest_first: bool = True):
        self._newest_first = newest_first
        self._by_post: Dict[str, List[Comment]] = {}

    async def list(self, post_id: str) -> ListResult:
        comments = list(self._by_post.get(post_id, []))
        if self._newest_first:
            comments.reverse()
        return ListResult(comments=comments)

    async def create(self, entry: NewCommentEntry) -> CreateResult:
        comment = Comment(
            id=new_id("cmt"),
            post_id=entry.post_id,
            author=entry.author,
            content=entry.content,
            created_at=now_iso(),
        )
        self._by_post.setdefault(entry.post_id, []).append(comment)
        return CreateResult()
