from __future__ import annotations

import os
from dataclasses import dataclass

@dataclass(frozen=True)
class Settings:
    # AWS
    aws_region: str = os.environ.get("AWS_REGION", "us-east-1")

    # Comment store (DynamoDB single table)
    comments_table_name: str = os.environ.get("COMMENTS_TABLE_NAME", "comments")
    comments_index_name: str = os.environ.get("COMMENTS_INDEX_NAME", "")
    comments_newest_first: bool = os.environ.get("COMMENTS_NEWEST_FIRST", "1") not in ("0", "false", "False")
    comments_list_limit: int = int(os.environ.get("COMMENTS_LIST_LIMIT", "500"))

    # Name cache
    name_cache_table_name: str = os.environ.get("NAME_CACHE_TABLE_NAME", "commenter_names")
    name_cache_key: str = os.environ.get("NAME_CACHE_KEY", "commenterName")

    # Draft limits (0 = no limit)
    max_author_len: int = int(os.environ.get("COMMENT_MAX_AUTHOR_LEN", "0"))
    max_content_len: int = int(os.environ.get("COMMENT_MAX_CONTENT_LEN", "0"))

    # Sessions
    max_pending_notifications: int = int(os.environ.get("MAX_PENDING_NOTIFICATIONS", "50"))
    max_comment_sessions: int = int(os.environ.get("MAX_COMMENT_SESSIONS", "1000"))
    comment_session_idle_seconds: int = int(os.environ.get("COMMENT_SESSION_IDLE_SECONDS", "1800"))

    metrics_enabled: bool = os.environ.get("METRICS_ENABLED", "1") not in ("0", "false", "False")


S = Settings()
