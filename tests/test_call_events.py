"""Tests for call-lifecycle webhook parsing and recording."""

from __future__ import annotations

import pytest

from pharmacy_voice.services.call_events import parse_call_event, record_call_event
from pharmacy_voice.services.ledger import CallLog


def _event(event: str = "call_started", **call_overrides) -> dict:
    call = {"call_id": "call_abc", "agent_id": "agent_1", "call_status": "ongoing"}
    call.update(call_overrides)
    return {"event": event, "call": call}


class TestParseCallEvent:
    @pytest.mark.parametrize("event", ["call_started", "call_ended", "call_analyzed"])
    def test_valid_events_parse(self, event):
        outcome = parse_call_event(_event(event))
        assert outcome.parsed
        assert outcome.classification == event
        assert outcome.call_id == "call_abc"
        assert outcome.error is None

    def test_full_analyzed_payload(self):
        outcome = parse_call_event(
            _event(
                "call_analyzed",
                direction="inbound",
                start_timestamp=1700000000000,
                call_analysis={
                    "call_summary": "Asked about paracetamol",
                    "user_sentiment": "Positive",
                    "call_successful": True,
                    "custom_analysis_data": {"order_placed": True},
                },
            )
        )
        assert outcome.parsed
        assert outcome.event.call.call_analysis.call_successful is True

    def test_unknown_event_type_is_unparsed(self):
        outcome = parse_call_event(_event("call_transferred"))
        assert not outcome.parsed
        assert outcome.classification == "unknown"
        assert outcome.call_id == "call_abc"
        assert outcome.error

    @pytest.mark.parametrize("field", ["call_id", "agent_id"])
    def test_empty_identifiers_are_rejected(self, field):
        outcome = parse_call_event(_event(**{field: ""}))
        assert not outcome.parsed

    def test_bad_direction_is_rejected(self):
        assert not parse_call_event(_event(direction="sideways")).parsed

    @pytest.mark.parametrize("raw", [None, "garbage", [], {"call": "nope"}, {}])
    def test_call_id_falls_back_to_unknown(self, raw):
        outcome = parse_call_event(raw)
        assert not outcome.parsed
        assert outcome.call_id == "unknown"

    def test_numeric_call_id_is_kept(self):
        outcome = parse_call_event({"event": "call_started", "call": {"call_id": 4521}})
        assert not outcome.parsed
        assert outcome.call_id == "4521"


class TestRecordCallEvent:
    def test_valid_event_appends_one_entry(self):
        log = CallLog()
        record_call_event(parse_call_event(_event("call_ended", transcript="hi")), log)
        assert len(log) == 1
        entry = log.entries[0]
        assert entry.event == "call_ended"
        assert entry.call_id == "call_abc"
        assert entry.data["call"]["transcript"] == "hi"

    def test_malformed_event_appends_raw_body(self):
        log = CallLog()
        raw = {"event": "call_started", "call": {"call_id": "call_x"}}
        record_call_event(parse_call_event(raw), log)
        assert len(log) == 1
        entry = log.entries[0]
        assert entry.event == "unknown"
        assert entry.call_id == "call_x"
        assert entry.data == raw

    def test_logs_call_details(self, caplog):
        import logging

        caplog.set_level(logging.INFO, logger="pharmacy_voice")
        record_call_event(
            parse_call_event(_event("call_started", from_number="+639171234567")), CallLog(),
        )
        assert "Call started: call_abc" in caplog.text
        assert "+639171234567" in caplog.text
