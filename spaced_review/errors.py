"""
Typed domain errors for the review engine.

Every error carries a machine-readable ``kind`` so API-facing callers can
return a structured failure instead of a bare message.
"""

import logging

# Operator-visible channel for ledger/state disagreements
reconciliation_logger = logging.getLogger("spaced_review.reconciliation")


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    kind = "domain_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"success": False, "kind": self.kind, "message": self.message}


class NotFound(DomainError):
    """Entity id does not resolve (or is not visible to the caller)."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id=None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class Forbidden(DomainError):
    """Entity exists but the caller does not own its governing subject/user."""

    kind = "forbidden"

    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(message)


class ValidationError(DomainError):
    """Malformed input, e.g. a missing required title."""

    kind = "validation_error"


class DependencyFailure(DomainError):
    """Persistence layer unavailable or timed out."""

    kind = "dependency_failure"


class PartialUpdateInconsistency(DomainError):
    """Topic state and the reward ledger disagree."""

    kind = "partial_update_inconsistency"

    def __init__(self, message: str, user_id: int = None) -> None:
        self.user_id = user_id
        super().__init__(message)


class DuplicateNotification(ValidationError):
    """An unread notification already exists for this (user, topic)."""

    def __init__(self, user_id: int, topic_id: int) -> None:
        self.user_id = user_id
        self.topic_id = topic_id
        super().__init__(f"Unread notification already exists for topic {topic_id}")
