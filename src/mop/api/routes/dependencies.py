from __future__ import annotations

from fastapi import Request
from opentelemetry import trace

from mop.api.middleware.request_id import get_request_id
from mop.application.use_cases.context import TraceContext
from mop.infrastructure.messaging.redis_stream_publisher import RedisStreamPublisher


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def trace_context() -> TraceContext:
    return TraceContext(trace_id=_current_trace_id(), request_id=get_request_id())


def publisher(request: Request) -> RedisStreamPublisher:
    return RedisStreamPublisher(request.app.state.broker)
