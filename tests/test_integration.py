# ==============================================
# Integration Tests
# ==============================================
#
# Whole pipeline against a SQLite file: raw JSON text in,
# one row out, table schema grown as needed.
# ==============================================

import json
import re
import threading

import pytest

from schemaflow.errors import MalformedDocumentError, StoreUnavailableError
from schemaflow.ingest import Ingestor
from schemaflow.normalization import to_column_name
from schemaflow.storage import create_client


def columns_of(config):
    with create_client(config) as client:
        return client.get_current_columns()


class TestPipelineIntegration:
    def test_nested_document_on_empty_table(self, ingestor, config, read_rows):
        raw = '{"a": 1, "b": {"c": "x"}}'
        ingestor.ingest_raw(raw)

        assert columns_of(config) == ["Id", "Payload", "a", "b_c"]
        assert read_rows() == [{"Id": 1, "Payload": raw, "a": "1", "b_c": "x"}]

    def test_array_stored_as_text(self, ingestor, config, read_rows):
        ingestor.ingest_raw('{"tags": [1,2,3]}')

        assert columns_of(config) == ["Id", "Payload", "tags"]
        assert read_rows()[0]["tags"] == "[1,2,3]"

    def test_null_then_value_reuses_column(self, ingestor, config, read_rows):
        ingestor.ingest_raw('{"a": null}')
        ingestor.ingest_raw('{"a": "hello"}')

        assert columns_of(config) == ["Id", "Payload", "a"]
        assert [row["a"] for row in read_rows()] == [None, "hello"]

    def test_oversized_key_gets_stable_fingerprinted_name(self, ingestor, config, read_rows):
        key = ("key-with.punct!" * 14)[:200]
        raw = json.dumps({key: "v"})

        first = ingestor.ingest_raw(raw)
        second = ingestor.ingest_raw(raw)

        name = first.columns[0]
        assert len(name) <= 120
        assert re.search(r"_[0-9a-f]{6}$", name)
        assert second.columns == [name]
        assert name == to_column_name(key)
        assert columns_of(config) == ["Id", "Payload", name]
        assert [row[name] for row in read_rows()] == ["v", "v"]

    def test_case_variant_keys_share_a_column(self, ingestor, config, read_rows):
        result = ingestor.ingest_raw('{"a": 1, "A": 2}')

        assert result.columns == ["a", "A"]
        assert columns_of(config) == ["Id", "Payload", "a"]
        assert read_rows()[0]["a"] == "2"

    def test_later_documents_grow_schema(self, ingestor, config):
        ingestor.ingest_value({"a": 1})
        ingestor.ingest_value({"b": {"c": True}})
        ingestor.ingest_value({"A": 3, "d": [None]})

        assert columns_of(config) == ["Id", "Payload", "a", "b_c", "d"]

    def test_root_scalar_document(self, ingestor, read_rows):
        ingestor.ingest_raw('"just text"')
        row = read_rows()[0]
        assert row["Payload"] == '"just text"'
        assert row["rootValue"] == "just text"

    def test_numbers_stored_without_loss(self, ingestor, read_rows):
        digits = "9" * 5000
        raw = '{"pi": 3.141592653589793238462643, "big": 1e400, "n": %s}' % digits
        ingestor.ingest_raw(raw)

        row = read_rows()[0]
        assert row["Payload"] == raw
        assert row["pi"] == "3.141592653589793238462643"
        assert row["big"] == "1e400"
        assert row["n"] == digits

    def test_duplicate_keys_each_get_a_column(self, ingestor, config, read_rows):
        ingestor.ingest_raw('{"a": 1, "a": 2}')

        assert columns_of(config) == ["Id", "Payload", "a", "a_2"]
        row = read_rows()[0]
        assert (row["a"], row["a_2"]) == ("1", "2")

    def test_malformed_document_never_touches_store(self, config):
        opened = []

        def factory():
            opened.append(True)
            return create_client(config)

        with pytest.raises(MalformedDocumentError):
            Ingestor(config, client_factory=factory).ingest_raw("{not json")
        assert opened == []

    def test_store_failure_surfaces_and_closes_connection(self, config, fake_client):
        def broken(values):
            raise StoreUnavailableError("connection reset")

        fake_client.insert_row = broken
        ingestor = Ingestor(config, client_factory=lambda: fake_client)

        with pytest.raises(StoreUnavailableError):
            ingestor.ingest_raw('{"a": 1}')
        assert fake_client.connected is False
        # schema growth before the failure is kept
        assert fake_client.columns == ["Id", "Payload", "a"]

    def test_unexpected_driver_error_becomes_store_unavailable(self, config, fake_client):
        def broken():
            raise RuntimeError("driver bug")

        fake_client.get_current_columns = broken
        ingestor = Ingestor(config, client_factory=lambda: fake_client)

        with pytest.raises(StoreUnavailableError):
            ingestor.ingest_raw('{"a": 1}')

    def test_ensure_table(self, ingestor, config):
        assert ingestor.ensure_table() is True
        assert ingestor.ensure_table() is False
        assert columns_of(config) == ["Id", "Payload"]

    def test_concurrent_documents(self, config, read_rows):
        documents = [{"shared": i, f"own_{i}": i, "nested": {"k": i}} for i in range(8)]
        errors = []

        def post(document):
            try:
                Ingestor(config).ingest_value(document)
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=post, args=(doc,)) for doc in documents]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        columns = columns_of(config)
        assert sorted(columns) == sorted(
            ["Id", "Payload", "shared", "nested_k"] + [f"own_{i}" for i in range(8)]
        )
        assert len(read_rows()) == 8
