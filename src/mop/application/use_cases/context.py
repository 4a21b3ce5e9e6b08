from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mop.application.dto.events import EventEnvelope


@dataclass(frozen=True)
class TraceContext:
    """Correlation ids of the checkout or status request; they ride along in every event it publishes."""

    trace_id: str | None
    request_id: str | None

    @classmethod
    def from_envelope(cls, envelope: EventEnvelope) -> TraceContext:
        return cls(trace_id=envelope.trace_id, request_id=envelope.request_id)

    def origin_log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.request_id:
            fields["origin_request_id"] = self.request_id
        if self.trace_id:
            fields["origin_trace_id"] = self.trace_id
        return fields
