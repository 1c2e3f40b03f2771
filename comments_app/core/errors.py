from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from botocore.exceptions import ClientError

GENERIC_ERROR_MESSAGE = "Please try again later"


class CommentErrorKind(str, Enum):
    VALIDATION = "validation"
    STORE_READ = "store_read"
    STORE_WRITE = "store_write"
    REFRESH_AFTER_WRITE = "refresh_after_write"


class ValidationCode(str, Enum):
    EMPTY_CONTENT = "EmptyContent"
    EMPTY_AUTHOR = "EmptyAuthor"
    CONTENT_TOO_LONG = "ContentTooLong"
    AUTHOR_TOO_LONG = "AuthorTooLong"


VALIDATION_MESSAGES = {
    ValidationCode.EMPTY_CONTENT: "Please enter a comment",
    ValidationCode.EMPTY_AUTHOR: "Please enter your name",
    ValidationCode.CONTENT_TOO_LONG: "Comment is too long",
    ValidationCode.AUTHOR_TOO_LONG: "Name is too long",
}


@dataclass(frozen=True)
class CommentError:
    kind: CommentErrorKind
    message: str
    code: Optional[ValidationCode] = None

    @classmethod
    def validation(cls, code: ValidationCode) -> "CommentError":
        return cls(CommentErrorKind.VALIDATION, VALIDATION_MESSAGES[code], code)


class DraftValidationError(Exception):
    def __init__(self, code: ValidationCode):
        super().__init__(VALIDATION_MESSAGES[code])
        self.code = code


def ddb_error_message(exc: ClientError) -> str:
    return f"DynamoDB error: {exc.response.get('Error', {}).get('Message', 'unknown')}"
