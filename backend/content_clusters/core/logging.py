"""Structured logging for the content cluster engine.

Everything goes to stdout, as JSON unless LOG_FORMAT=text. Modules log
through `get_logger(__name__)` with ids in `extra`; the domain loggers
below fix the message and fields for events that operators search for:

- db_logger: connection failures (masked URL), slow transactions,
  rollbacks, migrations
- claude_logger: outbound generation calls with model, timing and tokens
- cluster_logger: strategy transitions, builds, approval batch outcomes
"""

import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from pythonjsonlogger import jsonlogger

from content_clusters.core.config import get_settings

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine")

_PASSWORD_IN_URL = re.compile(r"(://[^:/@]+:)([^@]+)(@)")


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined]
    """JSON records with an ISO timestamp, level and logger name."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(UTC).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def mask_connection_string(conn_str: str) -> str:
    """Replace the password in a database URL with ****."""
    return _PASSWORD_IN_URL.sub(r"\1****\3", conn_str or "")


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(
            CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _error_fields(error: Exception) -> dict[str, str]:
    return {"error_type": type(error).__name__, "error_message": str(error)}


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}... (truncated, {len(text)} chars)"


class DatabaseLogger:
    """Database events: connections, slow transactions, rollbacks, migrations."""

    def __init__(self) -> None:
        self.logger = get_logger("database")

    def connection_error(self, error: Exception, connection_string: str) -> None:
        self.logger.error(
            "Database connection failed",
            extra={
                "connection_string": mask_connection_string(connection_string),
                **_error_fields(error),
            },
        )

    def slow_query(
        self, query: str, duration_ms: float, table: str | None = None
    ) -> None:
        self.logger.warning(
            "Slow database operation",
            extra={"query": query[:500], "table": table, "duration_ms": round(duration_ms, 2)},
        )

    def transaction_failure(
        self, error: Exception, table: str | None = None, context: str | None = None
    ) -> None:
        self.logger.error(
            "Database operation failed, rolling back",
            extra={"table": table, "rollback_context": context, **_error_fields(error)},
        )

    def migration_start(self, version: str, description: str) -> None:
        self.logger.info(
            "Schema migration started",
            extra={"migration_version": version, "description": description},
        )

    def migration_end(self, version: str, success: bool) -> None:
        self.logger.log(
            logging.INFO if success else logging.ERROR,
            "Schema migration finished" if success else "Schema migration failed",
            extra={"migration_version": version, "success": success},
        )


db_logger = DatabaseLogger()


class ClaudeLogger:
    """Outbound text-generation calls. Prompts and responses only at DEBUG.

    The API key is never passed to this logger.
    """

    def __init__(self) -> None:
        self.logger = get_logger("claude")

    def api_call_start(self, model: str, prompt_length: int) -> None:
        self.logger.debug(
            "Generation request sent",
            extra={"model": model, "prompt_length": prompt_length},
        )

    def api_call_success(
        self,
        model: str,
        duration_ms: float,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        request_id: str | None = None,
    ) -> None:
        self.logger.info(
            "Generation request completed",
            extra={
                "model": model,
                "duration_ms": round(duration_ms, 2),
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "upstream_request_id": request_id,
            },
        )

    def api_call_error(
        self,
        model: str,
        duration_ms: float,
        status_code: int | None,
        error: str,
        error_type: str,
        request_id: str | None = None,
    ) -> None:
        """Client errors (4xx) at WARNING; server and transport errors at ERROR."""
        client_error = status_code is not None and 400 <= status_code < 500
        self.logger.log(
            logging.WARNING if client_error else logging.ERROR,
            "Generation request failed",
            extra={
                "model": model,
                "duration_ms": round(duration_ms, 2),
                "status_code": status_code,
                "error_type": error_type,
                "error_message": error,
                "upstream_request_id": request_id,
            },
        )

    def timeout(self, model: str, timeout_seconds: float) -> None:
        self.logger.warning(
            "Generation request timed out",
            extra={"model": model, "timeout_seconds": timeout_seconds},
        )

    def rate_limit(
        self,
        model: str,
        retry_after: float | None = None,
        request_id: str | None = None,
    ) -> None:
        self.logger.warning(
            "Generation rate limited (429)",
            extra={
                "model": model,
                "retry_after_seconds": retry_after,
                "upstream_request_id": request_id,
            },
        )

    def auth_failure(self, status_code: int) -> None:
        self.logger.error(
            "Generation API rejected credentials",
            extra={"status_code": status_code},
        )

    def request_body(self, model: str, system_prompt: str, user_prompt: str) -> None:
        self.logger.debug(
            "Generation prompt",
            extra={
                "model": model,
                "system_prompt": _truncate(system_prompt, 200),
                "user_prompt": _truncate(user_prompt, 500),
            },
        )

    def response_body(self, model: str, response_text: str, duration_ms: float) -> None:
        self.logger.debug(
            "Generation response",
            extra={
                "model": model,
                "response": _truncate(response_text, 500),
                "response_length": len(response_text),
            },
        )

    def graceful_fallback(self, operation: str, reason: str) -> None:
        """A call refused locally (e.g. open circuit) without reaching the API."""
        self.logger.warning(
            "Generation refused without calling the API",
            extra={"operation": operation, "reason": reason},
        )


claude_logger = ClaudeLogger()


class ClusterEngineLogger:
    """Logger for the content cluster engine.

    State transitions at INFO, commit conflicts and degraded checks at
    WARNING, partial commits at ERROR. Always includes strategy/build ids.
    """

    def __init__(self) -> None:
        self.logger = get_logger("cluster_engine")

    def strategy_transition(
        self, strategy_id: str, from_status: str, to_status: str
    ) -> None:
        """Log a strategy status change."""
        self.logger.info(
            "Strategy status changed",
            extra={
                "strategy_id": strategy_id,
                "from_status": from_status,
                "to_status": to_status,
            },
        )

    def strategies_generated(self, topic: str, count: int, duration_ms: float) -> None:
        self.logger.info(
            "Strategies generated",
            extra={
                "topic": topic[:200],
                "strategy_count": count,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def build_created(
        self,
        strategy_id: str,
        build_id: str,
        pillar_slug: str,
        edit_count: int,
        omitted_posts: list[str],
        duration_ms: float,
    ) -> None:
        self.logger.info(
            "Cluster build created",
            extra={
                "strategy_id": strategy_id,
                "build_id": build_id,
                "pillar_slug": pillar_slug,
                "edit_count": edit_count,
                "omitted_posts": omitted_posts,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def build_discarded(self, strategy_id: str, build_id: str, reason: str) -> None:
        self.logger.info(
            "Cluster build discarded",
            extra={"strategy_id": strategy_id, "build_id": build_id, "reason": reason},
        )

    def commit_conflict(self, build_id: str, conflicts: list[dict[str, str]]) -> None:
        """Log stale-content conflicts that aborted a batch."""
        self.logger.warning(
            "Approval batch aborted: live content changed since build",
            extra={"build_id": build_id, "conflicts": conflicts},
        )

    def commit_success(
        self, strategy_id: str, build_id: str, published_count: int
    ) -> None:
        self.logger.info(
            "Approval batch committed",
            extra={
                "strategy_id": strategy_id,
                "build_id": build_id,
                "published_count": published_count,
            },
        )

    def partial_commit(
        self,
        build_id: str,
        written: list[dict[str, str]],
        failed: dict[str, str],
        error: Exception,
    ) -> None:
        """Log a batch that failed after some documents were written."""
        self.logger.error(
            "Approval batch partially committed",
            extra={
                "build_id": build_id,
                "written": written,
                "failed": failed,
                **_error_fields(error),
            },
        )

    def check_degraded(self, check: str, error: Exception) -> None:
        """Log an advisory check that could not be verified."""
        self.logger.warning(
            f"{check} could not be verified",
            extra={
                "check": check,
                **_error_fields(error),
            },
        )


cluster_logger = ClusterEngineLogger()
