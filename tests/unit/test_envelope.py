"""Tests for response envelope normalization and entity id extraction."""

import pytest

from requirement_sync_core.utils.envelope import (
    NO_MATCH,
    extract_entity_id,
    first_record,
    normalize_records,
)

TWO_RECORDS = [{"id": "1"}, {"id": "2"}]


class TestNormalizeRecords:
    @pytest.mark.parametrize(
        "payload",
        [
            TWO_RECORDS,
            {"requirements": TWO_RECORDS},
            {"items": TWO_RECORDS},
            {"data": TWO_RECORDS},
        ],
    )
    def test_two_records_in_every_envelope(self, payload):
        assert normalize_records(payload) == TWO_RECORDS

    def test_requirements_wins_over_items_and_data(self):
        payload = {
            "requirements": [{"id": "r"}],
            "items": [{"id": "i"}],
            "data": [{"id": "d"}],
        }
        assert normalize_records(payload) == [{"id": "r"}]

    def test_items_wins_over_data(self):
        assert normalize_records({"items": [{"id": "i"}], "data": [{"id": "d"}]}) == [{"id": "i"}]

    def test_bare_object_is_single_record(self):
        record = {"id": "7", "title": "Lone"}
        assert normalize_records(record) == [record]

    def test_non_list_envelope_value_falls_through_to_bare_object(self):
        payload = {"data": {"id": "x"}}
        assert normalize_records(payload) == [payload]

    @pytest.mark.parametrize("payload", [None, "text", 42, {}, []])
    def test_nothing(self, payload):
        assert normalize_records(payload) == []

    def test_non_object_entries_dropped(self):
        assert normalize_records([{"id": "1"}, "junk", None]) == [{"id": "1"}]

    def test_first_record(self):
        assert first_record({"items": TWO_RECORDS}) == {"id": "1"}
        assert first_record([]) is None


class TestExtractEntityId:
    def test_string_entity_id(self):
        match = extract_entity_id({"entityId": "abc"})
        assert match.matched
        assert match.shape == "entityId"
        assert match.value == "abc"

    def test_object_entity_id(self):
        match = extract_entity_id({"entityId": {"id": "abc"}})
        assert match.shape == "entityId.id"
        assert match.value == "abc"

    def test_nested_under_key(self):
        assert extract_entity_id({"key": {"entityId": "abc"}}).value == "abc"
        assert extract_entity_id({"key": {"entityId": {"id": "abc"}}}).shape == "key.entityId"

    def test_top_level_wins_over_nested(self):
        match = extract_entity_id({"entityId": "top", "key": {"entityId": "nested"}})
        assert match.value == "top"

    def test_plain_id_fallback(self):
        assert extract_entity_id({"externalId": "ext"}).value == "ext"
        assert extract_entity_id({"id": "plain"}).shape == "id"

    @pytest.mark.parametrize("item", [{}, {"entityId": {}}, {"key": "x"}, None, "abc"])
    def test_no_shape_matched(self, item):
        match = extract_entity_id(item)
        assert match == NO_MATCH
        assert not match.matched
