"""
Tests for the merge engine.

Covers:
- Last-write-wins by id, wholesale replacement
- Idempotence of repeated merges
- Ordering of surviving and new records
- last_sync monotonicity
- Type mismatch rejection
- Single-record delete

Run with: pytest tests/test_merger.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from crm_harvest.errors import MergeError
from crm_harvest.models.collection import TypedCollection
from crm_harvest.models.records import Contact, Deal, RecordType
from crm_harvest.pipeline.merger import delete_record, merge_records

T0 = datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


def _deals(*records, last_sync=None) -> TypedCollection:
    return TypedCollection(record_type=RecordType.DEALS, records=list(records), last_sync=last_sync)


def _deal(deal_id: str, title: str, value: float = 100.0) -> Deal:
    return Deal(id=deal_id, title=title, value=value)


class TestLastWriteWins:
    def test_batch_replaces_same_id_and_adds_new(self):
        persisted = _deals(_deal('1', 'v1'))
        batch = [_deal('1', 'v2'), _deal('2', 'v3')]

        result = merge_records(batch, persisted, now=T0)

        assert result.collection.records == [_deal('1', 'v2'), _deal('2', 'v3')]
        assert result.created == ['2']
        assert result.updated == ['1']
        assert result.total == 2

    def test_replacement_is_wholesale(self):
        persisted = _deals(Deal(id='1', title='Old', value=5, stage='Won', owner='Sam'))
        result = merge_records([Deal(id='1', title='New', value=7)], persisted, now=T0)

        merged = result.collection.records[0]
        assert merged.stage == ''
        assert merged.owner == ''

    def test_records_not_in_batch_survive(self):
        persisted = _deals(_deal('a', 'A'), _deal('b', 'B'), _deal('c', 'C'))
        result = merge_records([_deal('b', 'B2'), _deal('d', 'D')], persisted, now=T0)

        assert [r.id for r in result.collection.records] == ['a', 'b', 'c', 'd']
        assert result.collection.get('b').title == 'B2'

    def test_duplicate_ids_in_batch_last_wins(self):
        result = merge_records([_deal('x', 'first'), _deal('x', 'second')], _deals(), now=T0)
        assert result.collection.records == [_deal('x', 'second')]
        assert result.created == ['x']
        assert result.updated == []

    def test_input_not_mutated(self):
        persisted = _deals(_deal('1', 'v1'))
        merge_records([_deal('1', 'v2')], persisted, now=T0)
        assert persisted.records == [_deal('1', 'v1')]
        assert persisted.last_sync is None


class TestIdempotence:
    def test_merging_same_batch_twice_equals_once(self):
        persisted = _deals(_deal('1', 'v1'))
        batch = [_deal('1', 'v2'), _deal('2', 'v3')]

        once = merge_records(batch, persisted, now=T0).collection
        twice = merge_records(batch, once, now=T0).collection

        assert twice == once


class TestLastSync:
    def test_set_to_merge_time(self):
        result = merge_records([_deal('1', 'a')], _deals(), now=T0)
        assert result.collection.last_sync == T0

    def test_monotonic_under_clock_skew(self):
        later = T0 + timedelta(hours=1)
        persisted = _deals(last_sync=later)
        result = merge_records([_deal('1', 'a')], persisted, now=T0)
        assert result.collection.last_sync == later

    def test_successive_merges_non_decreasing(self):
        first = merge_records([_deal('1', 'a')], _deals())
        second = merge_records([_deal('2', 'b')], first.collection)
        assert second.collection.last_sync >= first.collection.last_sync


class TestTypeSafety:
    def test_wrong_record_type_rejected(self):
        with pytest.raises(MergeError):
            merge_records([Contact(id='c', name='Ana')], _deals(), now=T0)


class TestDeleteRecord:
    def test_removes_exactly_one(self):
        persisted = _deals(_deal('1', 'a'), _deal('2', 'b'), last_sync=T0)
        updated = delete_record(persisted, '1')
        assert [r.id for r in updated.records] == ['2']
        assert updated.last_sync == T0

    def test_missing_id_returns_none(self):
        assert delete_record(_deals(_deal('1', 'a')), 'nope') is None
