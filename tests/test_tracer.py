"""Tests for telemetry_core.tracing.tracer module."""

from __future__ import annotations

import threading

import pytest

from telemetry_core.config import TelemetryConfig
from telemetry_core.exceptions import NotFoundError, ValidationError
from telemetry_core.logging import BufferingHandler, LogLevel, get_logger
from telemetry_core.testing import (
    FixedDecisionSampler,
    RecordingSampler,
    RecordingTracingHook,
    create_test_tracer,
)
from telemetry_core.tracing import (
    AlwaysOffSampler,
    LoggingTracingHook,
    ParentBasedSampler,
    ProbabilitySampler,
    SamplingDecision,
    SpanKind,
    SpanStatusCode,
    TraceIdRatioBasedSampler,
    Tracer,
    TracerConfig,
    is_valid_span_id,
    is_valid_trace_id,
)


@pytest.fixture
def captured_tracer_logs():
    """Capture records emitted by the tracer module logger."""
    logger = get_logger("telemetry_core.tracing.tracer")
    handler = BufferingHandler()
    logger.add_handler(handler)
    yield handler
    logger.remove_handler(handler)


class TestTracerConfig:
    """Tests for TracerConfig."""

    def test_defaults(self):
        """Test default sampler and span cap."""
        config = TracerConfig("svc")
        assert isinstance(config.sampler, ProbabilitySampler)
        assert config.sampler.probability == 1.0
        assert config.max_spans_per_trace == 1000

    def test_validation(self):
        """Test empty service names and non-positive caps are rejected."""
        with pytest.raises(ValidationError):
            TracerConfig("")
        with pytest.raises(ValidationError):
            TracerConfig("svc", max_spans_per_trace=0)

    def test_from_config(self):
        """Test building from TelemetryConfig."""
        config = TracerConfig.from_config(
            TelemetryConfig(service_name="api", sampler="trace_id_ratio", sample_rate=0.2)
        )
        assert config.service_name == "api"
        assert isinstance(config.sampler, TraceIdRatioBasedSampler)
        assert config.sampler.ratio == 0.2

    def test_with_sampler(self):
        """Test with_sampler returns a modified copy."""
        config = TracerConfig("svc")
        updated = config.with_sampler(AlwaysOffSampler())
        assert isinstance(updated.sampler, AlwaysOffSampler)
        assert isinstance(config.sampler, ProbabilitySampler)


class TestStartSpan:
    """Tests for Tracer.start_span."""

    def test_root_span(self):
        """Test a root span gets fresh ids and is tracked."""
        tracer = create_test_tracer()
        span = tracer.start_span("root")
        assert is_valid_trace_id(span.trace_id)
        assert is_valid_span_id(span.span_id)
        assert span.parent_span_id is None
        assert tracer.get_span(span.span_id) is span

    def test_child_span(self):
        """Test a child joins the parent's trace."""
        tracer = create_test_tracer()
        parent = tracer.start_span("parent")
        child = tracer.start_span("child", parent=parent.context, kind=SpanKind.CLIENT)
        assert child.trace_id == parent.trace_id
        assert child.parent_span_id == parent.span_id
        assert child.span_id != parent.span_id
        assert child.kind is SpanKind.CLIENT

    def test_attribute_merge_order(self):
        """Test service name, then caller, then sampler attributes."""
        sampler = FixedDecisionSampler(attributes={"sampler.rule": "r1", "shared": "sampler"})
        tracer = Tracer(TracerConfig("svc", sampler=sampler))
        span = tracer.start_span("op", attributes={"shared": "caller", "user.id": 7})
        assert span.attributes == {
            "service.name": "svc",
            "shared": "sampler",
            "user.id": 7,
            "sampler.rule": "r1",
        }

    def test_caller_can_override_service_name(self):
        """Test caller attributes win over the service name."""
        tracer = create_test_tracer("svc")
        span = tracer.start_span("op", attributes={"service.name": "other"})
        assert span.attributes["service.name"] == "other"

    def test_sampling_context(self):
        """Test the sampler receives the candidate span's identity."""
        sampler = RecordingSampler()
        tracer = Tracer(TracerConfig("svc", sampler=sampler))
        parent = tracer.start_span("parent")
        tracer.start_span("child", parent=parent.context, attributes={"a": 1})
        context = sampler.contexts[-1]
        assert context.name == "child"
        assert context.trace_id == parent.trace_id
        assert context.parent_context == parent.context
        assert context.attributes == {"a": 1}

    def test_dropped_span_not_tracked(self):
        """Test dropped spans are returned but not registered."""
        tracer = create_test_tracer(decision=SamplingDecision.DROP)
        span = tracer.start_span("op")
        assert tracer.find_span(span.span_id) is None
        assert tracer.get_active_spans() == []
        assert not span.is_sampled

    def test_record_only_span_tracked(self):
        """Test record-only spans are tracked but not marked sampled."""
        tracer = create_test_tracer(decision=SamplingDecision.RECORD_ONLY)
        span = tracer.start_span("op")
        assert tracer.find_span(span.span_id) is span
        assert not span.context.is_sampled

    def test_probability_zero_tracks_nothing(self):
        """Test a zero-rate tracer keeps the active table empty."""
        tracer = Tracer(TracerConfig("svc", sampler=ProbabilitySampler(0.0)))
        for _ in range(10):
            tracer.start_span("op")
        assert len(tracer) == 0

    def test_parent_based_children_follow_root(self):
        """Test children of a dropped root are dropped too."""
        tracer = Tracer(TracerConfig("svc", sampler=ParentBasedSampler(AlwaysOffSampler())))
        root = tracer.start_span("root")
        child = tracer.start_span("child", parent=root.context)
        assert not root.is_sampled
        assert not child.is_sampled

    def test_max_spans_per_trace(self, captured_tracer_logs):
        """Test spans beyond the per-trace cap are not tracked and a warning is logged."""
        tracer = create_test_tracer(max_spans_per_trace=2)
        root = tracer.start_span("root")
        second = tracer.start_span("second", parent=root.context)
        third = tracer.start_span("third", parent=root.context)

        assert tracer.find_span(second.span_id) is second
        assert tracer.find_span(third.span_id) is None
        messages = [record.message for record in captured_tracer_logs.records]
        assert "Span limit reached for trace; span not tracked" in messages

    def test_cap_frees_up_after_end(self):
        """Test ending a span makes room for another in the same trace."""
        tracer = create_test_tracer(max_spans_per_trace=1)
        root = tracer.start_span("root")
        tracer.end_span(root.span_id)
        child = tracer.start_span("child", parent=root.context)
        assert tracer.find_span(child.span_id) is child


class TestSpanTable:
    """Tests for lookup, ending and export."""

    def test_get_span_unknown(self):
        """Test get_span raises for unknown ids and find_span returns None."""
        tracer = create_test_tracer()
        with pytest.raises(NotFoundError):
            tracer.get_span("ffffffffffffffff")
        assert tracer.find_span("ffffffffffffffff") is None

    def test_end_span_removes(self):
        """Test end_span ends and deregisters."""
        tracer = create_test_tracer()
        span = tracer.start_span("op")
        tracer.end_span(span.span_id)
        assert span.is_ended()
        assert tracer.find_span(span.span_id) is None

    def test_end_span_twice(self):
        """Test a second end_span is a no-op and keeps the end time."""
        tracer = create_test_tracer()
        span = tracer.start_span("op")
        tracer.end_span(span.span_id)
        end_time = span.end_time
        tracer.end_span(span.span_id)
        assert span.end_time == end_time

    def test_end_span_unknown(self):
        """Test ending an unknown id does nothing."""
        tracer = create_test_tracer()
        tracer.end_span("ffffffffffffffff")
        assert len(tracer) == 0

    def test_end_span_after_direct_end(self):
        """Test end_span removes a span already ended directly."""
        tracer = create_test_tracer()
        span = tracer.start_span("op")
        span.end(end_time=span.start_time + 1)
        tracer.end_span(span.span_id)
        assert span.end_time == span.start_time + 1
        assert tracer.find_span(span.span_id) is None

    def test_export_spans(self):
        """Test export returns tracked spans that ended without removal."""
        tracer = create_test_tracer()
        active = tracer.start_span("active")
        ended = tracer.start_span("ended")
        ended.end()
        assert tracer.export_spans() == [ended]
        assert tracer.find_span(active.span_id) is active
        assert tracer.export_spans() == [ended]

    def test_flush_ended_spans(self):
        """Test flushing drains ended spans."""
        tracer = create_test_tracer()
        active = tracer.start_span("active")
        ended = tracer.start_span("ended")
        ended.end()
        assert tracer.flush_ended_spans() == [ended]
        assert tracer.export_spans() == []
        assert tracer.get_active_spans() == [active]

    def test_active_spans_snapshot(self):
        """Test the returned list is a snapshot."""
        tracer = create_test_tracer()
        tracer.start_span("op")
        snapshot = tracer.get_active_spans()
        tracer.clear()
        assert len(snapshot) == 1
        assert tracer.get_active_spans() == []

    def test_concurrent_start_and_end(self):
        """Test the table stays consistent under concurrent use."""
        tracer = create_test_tracer()

        def work():
            for _ in range(200):
                span = tracer.start_span("op")
                tracer.end_span(span.span_id)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(tracer) == 0

    def test_get_config(self):
        """Test the tracer exposes its configuration."""
        config = TracerConfig("svc")
        assert Tracer(config).get_config() is config


class TestTraceContextManager:
    """Tests for Tracer.trace."""

    def test_success(self):
        """Test the span is OK, ended and removed after the block."""
        tracer = create_test_tracer()
        with tracer.trace("op") as span:
            assert tracer.find_span(span.span_id) is span
        assert span.status.code is SpanStatusCode.OK
        assert span.is_ended()
        assert tracer.find_span(span.span_id) is None

    def test_error(self):
        """Test exceptions are recorded and propagate."""
        tracer = create_test_tracer()
        with pytest.raises(KeyError), tracer.trace("op") as span:
            raise KeyError("missing")
        assert span.status.code is SpanStatusCode.ERROR
        assert span.events[0].attributes["exception.type"] == "KeyError"
        assert span.is_ended()

    def test_dropped_span_still_ended(self):
        """Test dropped spans are ended by the context manager."""
        tracer = create_test_tracer(decision=SamplingDecision.DROP)
        with tracer.trace("op") as span:
            pass
        assert span.is_ended()

    def test_log_context(self):
        """Test logs inside the block carry the trace and span ids."""
        tracer = create_test_tracer()
        logger = get_logger("tests.tracer.log_context")
        handler = BufferingHandler()
        logger.add_handler(handler)
        try:
            with tracer.trace("op") as span:
                logger.info("inside")
        finally:
            logger.remove_handler(handler)
        record = handler.records[0]
        assert record.context["trace_id"] == span.trace_id
        assert record.context["span_id"] == span.span_id


class TestTracingHooks:
    """Tests for hook notifications."""

    def test_start_and_end(self):
        """Test hooks see recorded spans start and end once."""
        hook = RecordingTracingHook()
        tracer = create_test_tracer(hooks=[hook])
        span = tracer.start_span("op")
        tracer.end_span(span.span_id)
        tracer.end_span(span.span_id)
        assert hook.started == [span]
        assert hook.ended == [span]

    def test_dropped_spans_not_reported(self):
        """Test hooks are not called for dropped spans."""
        hook = RecordingTracingHook()
        tracer = create_test_tracer(decision=SamplingDecision.DROP, hooks=[hook])
        tracer.start_span("op").end()
        assert hook.started == []
        assert hook.ended == []

    def test_failing_hook_isolated(self):
        """Test a raising hook does not break the tracer or other hooks."""

        class BrokenHook:
            def on_span_start(self, span):
                raise RuntimeError("hook failure")

            def on_span_end(self, span):
                raise RuntimeError("hook failure")

        recording = RecordingTracingHook()
        tracer = create_test_tracer(hooks=[BrokenHook(), recording])
        with tracer.trace("op"):
            pass
        assert len(recording.ended) == 1


class TestLoggingTracingHook:
    """Tests for LoggingTracingHook."""

    def test_logs_start_and_end(self):
        """Test start logs at debug and end logs at info with the status."""
        logger = get_logger("tests.tracing_hook.ok", level=LogLevel.DEBUG)
        handler = BufferingHandler()
        logger.add_handler(handler)
        tracer = create_test_tracer(hooks=[LoggingTracingHook("tests.tracing_hook.ok")])
        with tracer.trace("op") as span:
            pass

        started, ended = handler.records
        assert started.level is LogLevel.DEBUG
        assert started.message == "Span started"
        assert ended.level is LogLevel.INFO
        assert ended.extra["span_id"] == span.span_id
        assert ended.extra["status"] == "ok"

    def test_error_logs_warning(self):
        """Test spans ending in error log at warning."""
        logger = get_logger("tests.tracing_hook.error")
        handler = BufferingHandler()
        logger.add_handler(handler)
        tracer = create_test_tracer(hooks=[LoggingTracingHook("tests.tracing_hook.error")])
        with pytest.raises(RuntimeError), tracer.trace("op"):
            raise RuntimeError("boom")

        assert [r.level for r in handler.records] == [LogLevel.WARNING]
        assert handler.records[0].extra["status"] == "error"
