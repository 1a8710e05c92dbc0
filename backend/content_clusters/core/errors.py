"""Exception taxonomy for the content cluster engine.

Every engine error carries a stable `code` and the HTTP status the API
layer renders it with. `details()` returns the structured payload attached
to the error response (conflicting documents, written/failed documents...).
"""

from typing import Any


class ClusterEngineError(Exception):
    """Base exception for cluster engine errors."""

    code = "CLUSTER_ENGINE_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any] | None:
        return None


class StrategyValidationError(ClusterEngineError):
    """Raised when strategy generation input is invalid."""

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, field: str, value: Any, message: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Validation failed for '{field}': {message}")

    def details(self) -> dict[str, Any]:
        return {"field": self.field}


class GenerationParseError(ClusterEngineError):
    """Raised when text-generation output does not match the expected shape.

    Retryable: the same request may well succeed on a second attempt.
    """

    code = "GENERATION_PARSE_ERROR"
    status_code = 422

    def __init__(self, message: str, raw_excerpt: str = "") -> None:
        super().__init__(message)
        self.raw_excerpt = raw_excerpt

    def details(self) -> dict[str, Any]:
        return {"retryable": True}


class InvalidStrategyState(ClusterEngineError):
    """Raised when an operation is incompatible with a strategy's status."""

    code = "INVALID_STRATEGY_STATE"
    status_code = 409

    def __init__(self, strategy_id: str, status: str, operation: str) -> None:
        self.strategy_id = strategy_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} strategy {strategy_id} in status '{status}'"
        )

    def details(self) -> dict[str, Any]:
        return {"strategy_id": self.strategy_id, "status": self.status}


class ApprovalBatchError(ClusterEngineError):
    """Raised when an approval batch request is malformed."""

    code = "APPROVAL_BATCH_ERROR"
    status_code = 422


class NotFoundError(ClusterEngineError):
    """Base for lookups that found nothing."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")

    def details(self) -> dict[str, Any]:
        return {"entity_type": self.entity_type, "entity_id": self.entity_id}


class StrategyNotFoundError(NotFoundError):
    code = "STRATEGY_NOT_FOUND"

    def __init__(self, strategy_id: str) -> None:
        super().__init__("SeoStrategy", strategy_id)


class BuildNotFoundError(NotFoundError):
    code = "BUILD_NOT_FOUND"

    def __init__(self, build_id: str) -> None:
        super().__init__("ClusterBuild", build_id)


class ContentNotFoundError(NotFoundError):
    code = "CONTENT_NOT_FOUND"


class BuildAlreadyInProgress(ClusterEngineError):
    """Raised when a strategy already has an unresolved cluster build."""

    code = "BUILD_ALREADY_IN_PROGRESS"
    status_code = 409

    def __init__(self, strategy_id: str, build_id: str | None = None) -> None:
        self.strategy_id = strategy_id
        self.build_id = build_id
        super().__init__(
            f"Strategy {strategy_id} already has a cluster build awaiting review"
        )

    def details(self) -> dict[str, Any]:
        return {"strategy_id": self.strategy_id, "build_id": self.build_id}


class StaleContentConflict(ClusterEngineError):
    """Raised when live content changed between build and approval.

    Nothing is written when this is raised; the build is kept so the
    operator can discard and rebuild it.
    """

    code = "STALE_CONTENT_CONFLICT"
    status_code = 409

    def __init__(self, build_id: str, conflicts: list[dict[str, str]]) -> None:
        self.build_id = build_id
        self.conflicts = conflicts
        titles = ", ".join(c["title"] or c["id"] for c in conflicts)
        super().__init__(
            f"{len(conflicts)} document(s) changed since the cluster was built: {titles}"
        )

    def details(self) -> dict[str, Any]:
        return {"build_id": self.build_id, "conflicts": self.conflicts}


class PartialCommitError(ClusterEngineError):
    """Raised when a write fails after earlier documents were written."""

    code = "PARTIAL_COMMIT"
    status_code = 500

    def __init__(
        self,
        build_id: str,
        written: list[dict[str, str]],
        failed: dict[str, str],
    ) -> None:
        self.build_id = build_id
        self.written = written
        self.failed = failed
        super().__init__(
            f"Approval batch stopped after {len(written)} write(s); "
            f"failed on {failed['type']} {failed['id']}"
        )

    def details(self) -> dict[str, Any]:
        return {"build_id": self.build_id, "written": self.written, "failed": self.failed}


class RepositoryUnavailable(ClusterEngineError):
    """Raised when the content repository cannot be reached."""

    code = "REPOSITORY_UNAVAILABLE"
    status_code = 503

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        reason = f": {cause}" if cause else ""
        super().__init__(f"Content repository unavailable during {operation}{reason}")
