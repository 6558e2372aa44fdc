"""Mapper-level checks on the persisted tables."""

from sqlalchemy import inspect

from src.models.event_outbox import EventOutbox
from src.models.order import Order
from src.models.quote_response import QuoteResponse
from src.models.request_quote import RequestQuote


class TestEventOutboxTable:
    def test_columns_are_the_published_event_only(self):
        assert set(EventOutbox.__table__.columns.keys()) == {
            "id",
            "event_type",
            "aggregate_type",
            "aggregate_id",
            "payload",
            "schema_version",
            "created_at",
            "updated_at",
        }

    def test_indexed_by_aggregate(self):
        assert {ix.name for ix in EventOutbox.__table__.indexes} == {"ix_event_outbox_aggregate"}


class TestQuoteTables:
    def test_responses_are_loaded_by_query_not_relationship(self):
        assert not inspect(RequestQuote).relationships
        assert not inspect(QuoteResponse).relationships

    def test_response_references_its_request(self):
        (fk,) = QuoteResponse.__table__.c.request_quote_id.foreign_keys
        assert fk.column.table.name == "request_quotes"


class TestOrderTable:
    def test_search_text_is_not_nullable(self):
        assert Order.__table__.c.search_text.nullable is False
