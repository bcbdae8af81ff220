from __future__ import annotations

from enum import Enum


class RecommendationErrorCode(str, Enum):
    USER_HASHTAG_EMPTY = "USER_HASHTAG_EMPTY"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    STORE_NOT_FOUND = "STORE_NOT_FOUND"


class RecommendationError(Exception):
    """Base class for conditions that abort a recommendation request."""

    status_code: int = 400

    def __init__(self, message: str, code: RecommendationErrorCode) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class NoInterestTagsError(RecommendationError):
    """The user has no interest tags, so there is nothing to score against."""

    status_code = 400

    def __init__(self, user_id: int) -> None:
        super().__init__(
            f"User {user_id} has no interest tags; recommendation cannot proceed",
            RecommendationErrorCode.USER_HASHTAG_EMPTY,
        )
        self.user_id = user_id


class EntityNotFoundError(RecommendationError):
    status_code = 404

    def __init__(self, entity: str, entity_id: int | None, code: RecommendationErrorCode) -> None:
        super().__init__(f"{entity} {entity_id} not found", code)
        self.entity = entity
        self.entity_id = entity_id
