"""Tests for the engine invocation tracer."""

from uuid import UUID

from envelope_engines.tracer import compute_input_fingerprint, traced_engine


def test_fingerprint_is_deterministic():
    kwargs = {"a": 1, "b": "x", "c": [1, 2], "d": {"k": None}}
    assert compute_input_fingerprint(("a", "b", "c", "d"), kwargs) == compute_input_fingerprint(
        ("a", "b", "c", "d"), dict(reversed(list(kwargs.items())))
    )


def test_fingerprint_changes_with_input():
    assert compute_input_fingerprint(("a",), {"a": 1}) != compute_input_fingerprint(("a",), {"a": 2})


def test_missing_field_is_null():
    assert compute_input_fingerprint(("a",), {}) == compute_input_fingerprint(("a",), {"a": None})


def test_wrapper_passes_through_and_logs(captured_logs):
    @traced_engine("demo", "2.1", fingerprint_fields=("value",))
    def double(*, value):
        return value * 2

    assert double(value=21) == 42
    trace = [r for r in captured_logs() if r["message"] == "engine_trace"][0]
    assert trace["engine_name"] == "demo"
    assert trace["engine_version"] == "2.1"
    assert trace["function"].endswith("double")
    assert trace["duration_ms"] >= 0


def test_uuid_inputs_fingerprint_by_value():
    uid = "12345678-1234-5678-1234-567812345678"
    assert compute_input_fingerprint(("id",), {"id": UUID(uid)}) == compute_input_fingerprint(
        ("id",), {"id": uid}
    )
