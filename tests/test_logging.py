import json
import logging

from burbar_admin.logging import CorrelationFilter, StructuredFormatter, correlation_context


def _record(msg="hello"):
    return logging.LogRecord("burbar", logging.INFO, __file__, 1, msg, (), None)


def test_correlation_context_tags_records_and_resets():
    flt = CorrelationFilter()

    with correlation_context("req-123") as cid:
        record = _record()
        flt.filter(record)
        assert cid == "req-123"
        assert record.correlation_id == "req-123"

    record = _record()
    flt.filter(record)
    assert record.correlation_id == "-"


def test_nested_contexts_restore_outer_id():
    flt = CorrelationFilter()
    with correlation_context("outer"):
        with correlation_context() as inner:
            assert inner != "outer"
        record = _record()
        flt.filter(record)
        assert record.correlation_id == "outer"


def test_structured_formatter_emits_json():
    record = _record("shipped")
    record.correlation_id = "abc"
    record.extra_data = {"order": "A1B2C3D4"}

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["message"] == "shipped"
    assert entry["correlation_id"] == "abc"
    assert entry["data"] == {"order": "A1B2C3D4"}
