"""
Reporting Types

Data structures for captured events, transactions and delivery outcomes.
"""

import json
import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .. import __version__

SDK_NAME = "error-relay.python"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _new_span_id() -> str:
    return uuid.uuid4().hex[16:]


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, timezone.utc)
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return _now()


def _jsonable(value: Any) -> Any:
    """Return value if it serializes as JSON, else its repr."""
    try:
        json.dumps(value, allow_nan=False)
        return value
    except (TypeError, ValueError):
        return repr(value)


def sdk_info() -> Dict[str, str]:
    return {"name": SDK_NAME, "version": __version__}


class DeliveryStatus(Enum):
    """Outcome of one transmission."""
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class DeliveryResult:
    """Result of sending one event or transaction to the collector."""

    status: DeliveryStatus
    event_id: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, event_id: str) -> "DeliveryResult":
        return cls(status=DeliveryStatus.SUCCESS, event_id=event_id)

    @classmethod
    def failure(cls, reason: str) -> "DeliveryResult":
        return cls(status=DeliveryStatus.FAILURE, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class StackFrame:
    """A single frame of a captured stack trace."""

    filename: str
    function: str
    lineno: Optional[int] = None
    context_line: Optional[str] = None

    @classmethod
    def from_summary(cls, summary: traceback.FrameSummary) -> "StackFrame":
        return cls(
            filename=summary.filename,
            function=summary.name,
            lineno=summary.lineno,
            context_line=summary.line or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a Sentry frame."""
        frame = {
            "filename": self.filename,
            "abs_path": self.filename,
            "function": self.function,
            "lineno": self.lineno,
        }
        if self.context_line:
            frame["context_line"] = self.context_line
        return frame


@dataclass
class CapturedEvent:
    """
    An error or message captured for transmission.

    `event_id` is generated locally and travels in the envelope. `id` is
    only set once the collector has accepted the event.
    """

    message: str
    exception_type: Optional[str] = None
    module: Optional[str] = None
    stack_frames: List[StackFrame] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)
    level: str = "error"
    timestamp: datetime = field(default_factory=_now)
    event_id: str = field(default_factory=_new_id)
    id: Optional[str] = None

    @classmethod
    def from_exception(
        cls,
        exception: BaseException,
        extra: Optional[Dict[str, Any]] = None,
    ) -> "CapturedEvent":
        """
        Build an event from an exception and its traceback.

        Frames are ordered oldest call first, as Sentry expects.
        """
        frames = [
            StackFrame.from_summary(summary)
            for summary in traceback.extract_tb(exception.__traceback__)
        ]
        exc_type = type(exception)
        module = exc_type.__module__
        return cls(
            message=str(exception),
            exception_type=exc_type.__name__,
            module=None if module == "builtins" else module,
            stack_frames=frames,
            extra=dict(extra or {}),
        )

    @classmethod
    def from_message(
        cls,
        message: str,
        level: str = "info",
        extra: Optional[Dict[str, Any]] = None,
    ) -> "CapturedEvent":
        return cls(message=message, level=level, extra=dict(extra or {}))

    def to_payload(
        self,
        release: Optional[str] = None,
        environment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Convert to a Sentry event payload."""
        payload: Dict[str, Any] = {
            "event_id": self.event_id,
            "timestamp": _format_timestamp(self.timestamp),
            "platform": "python",
            "level": self.level,
            "extra": {key: _jsonable(value) for key, value in self.extra.items()},
            "sdk": sdk_info(),
        }

        if self.exception_type:
            payload["exception"] = {
                "values": [{
                    "type": self.exception_type,
                    "value": self.message,
                    "module": self.module,
                    "stacktrace": {
                        "frames": [f.to_dict() for f in self.stack_frames],
                    },
                }],
            }
        else:
            payload["message"] = {"formatted": self.message}

        if release:
            payload["release"] = release
        if environment:
            payload["environment"] = environment

        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CapturedEvent":
        """Rebuild an event from a payload produced by to_payload."""
        values = (payload.get("exception") or {}).get("values") or []

        if values:
            exc = values[-1]
            frames = [
                StackFrame(
                    filename=f.get("filename", ""),
                    function=f.get("function", ""),
                    lineno=f.get("lineno"),
                    context_line=f.get("context_line"),
                )
                for f in (exc.get("stacktrace") or {}).get("frames", [])
            ]
            message = exc.get("value", "")
            exception_type = exc.get("type")
            module = exc.get("module")
        else:
            frames = []
            message = (payload.get("message") or {}).get("formatted", "")
            exception_type = None
            module = None

        return cls(
            message=message,
            exception_type=exception_type,
            module=module,
            stack_frames=frames,
            extra=dict(payload.get("extra") or {}),
            level=payload.get("level", "error"),
            timestamp=_parse_timestamp(payload.get("timestamp")),
            event_id=payload.get("event_id") or _new_id(),
        )


@dataclass
class Span:
    """A timed unit of work inside a transaction."""

    op: str
    trace_id: str
    parent_span_id: str
    description: Optional[str] = None
    span_id: str = field(default_factory=_new_span_id)
    start_time: datetime = field(default_factory=_now)
    end_time: Optional[datetime] = None

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    def finish(self) -> None:
        """Close the span. Finishing twice keeps the first end time."""
        if self.end_time is None:
            self.end_time = _now()

    def to_dict(self) -> Dict[str, Any]:
        span = {
            "span_id": self.span_id,
            "parent_span_id": self.parent_span_id,
            "trace_id": self.trace_id,
            "op": self.op,
            "start_timestamp": _format_timestamp(self.start_time),
            "timestamp": _format_timestamp(self.end_time),
        }
        if self.description:
            span["description"] = self.description
        return span


@dataclass
class Transaction:
    """
    A named operation with child spans.

    Finish every span before handing the transaction to
    ReportingClient.finish_transaction.
    """

    name: str
    op: str
    sampled: bool
    source: str = "custom"
    spans: List[Span] = field(default_factory=list)
    trace_id: str = field(default_factory=_new_id)
    span_id: str = field(default_factory=_new_span_id)
    event_id: str = field(default_factory=_new_id)
    start_time: datetime = field(default_factory=_now)
    end_time: Optional[datetime] = None

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    @property
    def open_spans(self) -> List[Span]:
        return [s for s in self.spans if not s.finished]

    def mark_finished(self) -> None:
        """Close the transaction timestamps."""
        if self.end_time is None:
            self.end_time = _now()

    def start_child(self, op: str, description: Optional[str] = None) -> Span:
        """Start a child span of this transaction."""
        span = Span(
            op=op,
            description=description,
            trace_id=self.trace_id,
            parent_span_id=self.span_id,
        )
        self.spans.append(span)
        return span

    def to_payload(
        self,
        release: Optional[str] = None,
        environment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Convert to a Sentry transaction payload."""
        payload: Dict[str, Any] = {
            "type": "transaction",
            "event_id": self.event_id,
            "platform": "python",
            "transaction": self.name,
            "transaction_info": {"source": self.source},
            "start_timestamp": _format_timestamp(self.start_time),
            "timestamp": _format_timestamp(self.end_time),
            "contexts": {
                "trace": {
                    "trace_id": self.trace_id,
                    "span_id": self.span_id,
                    "op": self.op,
                    "status": "ok",
                },
            },
            "spans": [s.to_dict() for s in self.spans],
            "sdk": sdk_info(),
        }

        if release:
            payload["release"] = release
        if environment:
            payload["environment"] = environment

        return payload
