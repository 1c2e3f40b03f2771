from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

class Comment(BaseModel):
    # Store-assigned fields (id, created_at) are never synthesized locally.
    model_config = ConfigDict(populate_by_name=True, frozen=True)
    id: str = Field(validation_alias=AliasChoices("id", "comment_id"))
    post_id: str = Field(validation_alias=AliasChoices("post_id", "postId"))
    author: str
    content: str
    created_at: str = Field(validation_alias=AliasChoices("created_at", "createdAt"))

class NewCommentEntry(BaseModel):
    model_config = ConfigDict(frozen=True)
    post_id: str
    author: str
    content: str

class DraftPatchReq(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    commenter_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("commenter_name", "commenterName"))
    content: Optional[str] = None

class SubmitReq(DraftPatchReq):
    pass

class CommentErrorOut(BaseModel):
    kind: str
    message: str
    code: Optional[str] = None

class NotificationOut(BaseModel):
    kind: str
    title: str
    description: Optional[str] = None
    error: Optional[CommentErrorOut] = None

class ListStateOut(BaseModel):
    status: str
    comments: List[Comment] = Field(default_factory=list)
    count: int = 0
    error: Optional[CommentErrorOut] = None

class DraftOut(BaseModel):
    commenter_name: str = ""
    content: str = ""

class CommentViewResp(BaseModel):
    post_id: Optional[str] = None
    list_state: ListStateOut
    submit_state: str
    draft: DraftOut
    notifications: List[NotificationOut] = Field(default_factory=list)

class SubmitResp(BaseModel):
    outcome: str
    error: Optional[CommentErrorOut] = None
    refresh_error: Optional[CommentErrorOut] = None
    view: CommentViewResp
