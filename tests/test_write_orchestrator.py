# -*- coding: utf-8 -*-
"""
Testes do WriteOrchestrator.

Testa:
- Ordem das etapas: rows antes de compressão/upload
- Row id sequencial a partir de 1, um insert + commit por row
- Resolução de key com oráculo de existência
- Falha parcial: rows anteriores commitadas, posteriores não tentadas
- Uma única exceção por chunk, buffer temporário sempre liberado
"""

import gzip
import json
import logging
from datetime import datetime
from unittest.mock import MagicMock, Mock, call, patch

import pytest
from sqlalchemy import event, text

from chunk_sink.compression import GzipCompressor, JsonCompressor, default_registry
from chunk_sink.config import SinkConfig
from chunk_sink.errors import (
    CompressionError,
    DecodingError,
    RelationalError,
    ResourceError,
    SinkError,
    StoreProbeError,
    StoreUploadError,
)
from chunk_sink.models import InsertSpec
from chunk_sink.orchestrator import WriteOrchestrator, WriteState, to_bind_value
from chunk_sink.relational import RelationalRowSink

TEMPLATE = "logs/%{time_slice}_%{index}.%{file_extension}"


class FakeStorage:
    """Object store em memória com o contrato exists/put_stream."""

    def __init__(self, existing=()):
        self.objects = {key: b"" for key in existing}
        self.uploads = []
        self.probes = []

    def exists(self, key):
        self.probes.append(key)
        return key in self.objects

    def put_stream(self, key, stream, length, content_type="", reduced_redundancy=False):
        data = stream.read()
        assert len(data) == length
        self.objects[key] = data
        self.uploads.append((key, content_type, reduced_redundancy))
        return f"etag-{len(self.uploads)}"


def _orchestrator(storage, row_sink, compressor=None, **kwargs):
    return WriteOrchestrator(
        storage=storage,
        row_sink=row_sink,
        compressor=compressor or JsonCompressor(),
        insert_spec=InsertSpec(table="events", columns=("id", "body")),
        key_template=kwargs.pop("key_template", TEMPLATE),
        path_slicer=lambda path: path,
        **kwargs,
    )


class TestWrite:
    """Testes do caminho feliz."""

    def test_rows_inserted_in_order_with_sequential_ids(self, make_chunk):
        row_sink = Mock()
        storage = FakeStorage()

        _orchestrator(storage, row_sink).write(make_chunk(["a", "b"]))

        assert row_sink.insert_row.call_args_list == [
            call("events", ("id", "body"), [1, "a"]),
            call("events", ("id", "body"), [2, "b"]),
        ]

    def test_key_resolution_skips_existing(self, make_chunk):
        storage = FakeStorage(existing=["logs/20240101_0.json"])

        result = _orchestrator(storage, Mock()).write(make_chunk(["a"], key="20240101"))

        assert result.key == "logs/20240101_1.json"
        assert storage.probes == ["logs/20240101_0.json", "logs/20240101_1.json"]

    def test_upload_metadata_and_result(self, make_chunk):
        storage = FakeStorage()
        chunk = make_chunk(["a", "b"])

        result = _orchestrator(storage, Mock(), reduced_redundancy=True).write(chunk)

        assert storage.uploads == [("logs/20240101_0.json", "application/json", True)]
        assert storage.objects[result.key] == chunk.raw_bytes()
        assert result.rows_inserted == 2
        assert result.bytes_uploaded == len(chunk.raw_bytes())
        assert result.etag == "etag-1"
        assert result.state == WriteState.DONE

    def test_gzip_upload(self, make_chunk):
        storage = FakeStorage()
        chunk = make_chunk(["a"])

        result = _orchestrator(storage, Mock(), compressor=GzipCompressor()).write(chunk)

        assert result.key.endswith(".gz")
        assert storage.uploads[0][1] == "application/x-gzip"
        assert gzip.decompress(storage.objects[result.key]) == chunk.raw_bytes()

    def test_default_path_slicer(self):
        orchestrator = WriteOrchestrator(
            storage=FakeStorage(),
            row_sink=Mock(),
            compressor=JsonCompressor(),
            insert_spec=InsertSpec(table="events", columns=("id", "body")),
            key_template=TEMPLATE,
        )
        assert orchestrator.path_slicer("logs/") == "logs/"

    def test_path_placeholder_uses_slicer(self, make_chunk):
        storage = FakeStorage()
        orchestrator = WriteOrchestrator(
            storage=storage,
            row_sink=Mock(),
            compressor=JsonCompressor(),
            insert_spec=InsertSpec(table="events", columns=("id", "body")),
            key_template="%{path}%{time_slice}_%{index}.%{file_extension}",
            path="logs/%Y/",
            path_slicer=lambda path: path.replace("%Y", "2024"),
        )

        result = orchestrator.write(make_chunk(["a"]))
        assert result.key == "logs/2024/20240101_0.json"

    def test_inserts_happen_before_key_resolution(self, make_chunk):
        events = []
        row_sink = Mock()
        row_sink.insert_row.side_effect = lambda *args: events.append("insert")
        storage = FakeStorage()
        original_exists = storage.exists
        storage.exists = lambda key: events.append("probe") or original_exists(key)

        _orchestrator(storage, row_sink).write(make_chunk(["a", "b"]))

        assert events == ["insert", "insert", "probe"]

    def test_structured_body_is_bound_as_json(self, make_chunk):
        row_sink = Mock()
        _orchestrator(FakeStorage(), row_sink).write(make_chunk([{"msg": "olá", "n": 1}]))

        values = row_sink.insert_row.call_args.args[2]
        assert values[0] == 1
        assert json.loads(values[1]) == {"msg": "olá", "n": 1}

    def test_chunk_not_mutated(self, make_chunk):
        chunk = make_chunk(["a", {"b": 1}])
        before = (chunk.key, chunk.records, chunk.raw_bytes())

        _orchestrator(FakeStorage(), Mock()).write(chunk)

        assert (chunk.key, chunk.records, chunk.raw_bytes()) == before

    def test_empty_chunk_still_uploads(self, make_chunk):
        storage = FakeStorage()
        row_sink = Mock()

        result = _orchestrator(storage, row_sink).write(make_chunk([]))

        row_sink.insert_row.assert_not_called()
        assert result.rows_inserted == 0
        assert len(storage.uploads) == 1

    def test_atomic_chunk_uses_single_call(self, make_chunk):
        row_sink = Mock()
        row_sink.insert_rows.return_value = 2

        result = _orchestrator(FakeStorage(), row_sink, atomic_chunk=True).write(make_chunk(["a", "b"]))

        row_sink.insert_row.assert_not_called()
        row_sink.insert_rows.assert_called_once_with("events", ("id", "body"), [[1, "a"], [2, "b"]])
        assert result.rows_inserted == 2


class TestWriteFailures:
    """Testes de falha: uma exceção por chunk, sem efeitos além dos já commitados."""

    def test_partial_failure_stops_at_failing_row(self, make_chunk):
        row_sink = Mock()
        row_sink.insert_row.side_effect = [None, RelationalError("row 2"), None]
        storage = FakeStorage()

        with pytest.raises(RelationalError, match="row 2"):
            _orchestrator(storage, row_sink).write(make_chunk(["a", "b", "c"]))

        assert row_sink.insert_row.call_count == 2
        assert storage.probes == []
        assert storage.uploads == []

    def test_probe_failure_propagates(self, make_chunk):
        storage = FakeStorage()
        storage.exists = Mock(side_effect=StoreProbeError("timeout"))
        compressor = MagicMock(spec=JsonCompressor)
        compressor.extension = "json"

        with pytest.raises(StoreProbeError):
            _orchestrator(storage, Mock(), compressor=compressor).write(make_chunk(["a"]))

        compressor.compress.assert_not_called()

    def test_compression_failure_wrapped(self, make_chunk):
        storage = FakeStorage()
        compressor = MagicMock(spec=JsonCompressor)
        compressor.name = "json"
        compressor.extension = "json"
        compressor.compress.side_effect = OSError("disk full")

        with pytest.raises(CompressionError) as exc_info:
            _orchestrator(storage, Mock(), compressor=compressor).write(make_chunk(["a"]))

        assert isinstance(exc_info.value.__cause__, OSError)
        assert storage.uploads == []

    def test_upload_failure_releases_buffer(self, make_chunk):
        buffers = []
        storage = FakeStorage()

        def _fail(key, stream, length, **kwargs):
            buffers.append(stream)
            raise StoreUploadError("503")

        storage.put_stream = _fail

        with pytest.raises(StoreUploadError):
            _orchestrator(storage, Mock()).write(make_chunk(["a"]))

        assert buffers and buffers[0].closed

    def test_buffer_allocation_failure(self, make_chunk):
        with patch(
            "chunk_sink.utils.transient.tempfile.TemporaryFile",
            side_effect=OSError("no space"),
        ):
            with pytest.raises(ResourceError):
                _orchestrator(FakeStorage(), Mock()).write(make_chunk(["a"]))

    def test_non_json_body_values_are_stringified(self, make_chunk):
        """Test: datetime/bytes dentro do body não escapam como TypeError."""
        row_sink = Mock()
        chunk = make_chunk([{"at": datetime(2024, 1, 1), "raw": b"\x01"}])

        result = _orchestrator(FakeStorage(), row_sink).write(chunk)

        body = json.loads(row_sink.insert_row.call_args.args[2][1])
        assert body == {"at": "2024-01-01 00:00:00", "raw": "b'\\x01'"}
        assert result.state == WriteState.DONE

    def test_undecodable_body_raises_decoding_error(self, make_chunk):
        row_sink = Mock()
        circular = {}
        circular["self"] = circular

        with pytest.raises(DecodingError) as exc_info:
            _orchestrator(FakeStorage(), row_sink).write(make_chunk([circular]))

        assert isinstance(exc_info.value, SinkError)
        assert isinstance(exc_info.value.__cause__, ValueError)
        row_sink.insert_row.assert_not_called()

    def test_failure_logged_with_state(self, make_chunk, caplog):
        row_sink = Mock()
        row_sink.insert_row.side_effect = RelationalError("connect refused")
        logger = logging.getLogger("test.orchestrator")

        with caplog.at_level(logging.ERROR, logger="test.orchestrator"):
            with pytest.raises(RelationalError):
                _orchestrator(FakeStorage(), row_sink, logger=logger).write(make_chunk(["a"]))

        assert "inserting" in caplog.text
        assert "connect refused" in caplog.text


class TestWriteWithDatabase:
    """Integração com SQLite real via RelationalRowSink."""

    @pytest.fixture
    def row_sink(self, sqlite_url):
        sink = RelationalRowSink(sqlite_url)
        with sink.engine.begin() as conn:
            conn.execute(text("create table events (id integer primary key, body text not null)"))
        return sink

    def _rows(self, sink):
        with sink.engine.connect() as conn:
            return [tuple(r) for r in conn.execute(text("select id, body from events order by id"))]

    def test_two_rows_two_commits(self, row_sink, make_chunk):
        commits = []
        event.listen(row_sink.engine, "commit", lambda *args: commits.append(1))

        _orchestrator(FakeStorage(), row_sink).write(make_chunk(["a", "b"]))

        assert self._rows(row_sink) == [(1, "a"), (2, "b")]
        assert len(commits) == 2

    def test_row_two_fails_row_one_stays_committed(self, row_sink, make_chunk):
        storage = FakeStorage()

        # body NULL viola o NOT NULL na row 2
        with pytest.raises(RelationalError):
            _orchestrator(storage, row_sink).write(make_chunk(["a", None, "c"]))

        assert self._rows(row_sink) == [(1, "a")]
        assert storage.uploads == []

    def test_atomic_mode_rolls_back_whole_chunk(self, row_sink, make_chunk):
        with pytest.raises(RelationalError):
            _orchestrator(FakeStorage(), row_sink, atomic_chunk=True).write(make_chunk(["a", None, "c"]))

        assert self._rows(row_sink) == []


class TestFromConfig:
    """Testes para WriteOrchestrator.from_config."""

    @patch("chunk_sink.storage.object_storage.Minio")
    def test_builds_components(self, mock_minio, sqlite_url):
        config = SinkConfig(
            s3_bucket="logs",
            s3_endpoint="minio:9000",
            use_ssl=False,
            store_as="unknown",
            database_url=sqlite_url,
            table="events",
            columns="id, body",
            reduced_redundancy=True,
            max_key_index=10,
        )

        orchestrator = WriteOrchestrator.from_config(config, default_registry())

        assert orchestrator.compressor.name == "text"
        assert orchestrator.insert_spec == InsertSpec(table="events", columns=("id", "body"))
        assert orchestrator.key_resolver.max_index == 10
        assert orchestrator.reduced_redundancy is True
        assert orchestrator.storage.bucket == "logs"
        assert orchestrator.path_slicer("logs/") == "logs/"
        assert mock_minio.call_args.args == ("minio:9000",)

    def test_invalid_config(self):
        from chunk_sink.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            WriteOrchestrator.from_config(SinkConfig(), default_registry())


class TestToBindValue:
    """Testes para to_bind_value."""

    @pytest.mark.parametrize("body", ["a", 1, 2.5, None])
    def test_scalars_pass_through(self, body):
        assert to_bind_value(body) == body

    def test_list_as_json(self):
        assert to_bind_value([1, "a"]) == '[1, "a"]'
