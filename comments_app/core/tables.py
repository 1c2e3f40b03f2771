from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .aws import ddb
from .settings import S

@dataclass(frozen=True)
class Tables:
    comments: Any
    name_cache: Any

T = Tables(
    comments=ddb.Table(S.comments_table_name),
    name_cache=ddb.Table(S.name_cache_table_name),
)
