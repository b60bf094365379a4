"""
Orquestrador do write de um chunk.

Pipeline (sequencial, sem paralelismo interno):
    Decoding → Inserting → KeyResolving → Compressing → Uploading → Done

Qualquer etapa pode levar a Failed. A falha é logada uma vez, com a
etapa em que ocorreu, e a exceção original sobe para o chamador: uma
única exceção por chunk. Rows já commitadas antes da falha continuam
commitadas (ver RelationalRowSink).
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..compression import Compressor, CompressorRegistry
from ..config import SinkConfig
from ..errors import CompressionError, DecodingError, SinkError
from ..models import Chunk, InsertSpec
from ..relational import RelationalRowSink
from ..storage import ObjectKeyResolver, ObjectStorageClient
from ..storage.key_resolver import path_slicer as make_path_slicer
from ..utils import transient_buffer


class WriteState(str, Enum):
    """Etapa do write de um chunk."""

    DECODING = "decoding"
    INSERTING = "inserting"
    KEY_RESOLVING = "key_resolving"
    COMPRESSING = "compressing"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WriteResult:
    """Resultado de um write bem-sucedido."""

    key: str
    rows_inserted: int
    bytes_uploaded: int
    etag: Optional[str] = None
    state: WriteState = WriteState.DONE


def to_bind_value(body: Any) -> Any:
    """Body estruturado (dict/list) vira JSON; escalares passam direto.

    Valores sem representação JSON (datetime, bytes...) viram str().
    """
    if isinstance(body, (dict, list, tuple)):
        return json.dumps(body, ensure_ascii=False, default=str)
    return body


class WriteOrchestrator:
    """
    Ponto de entrada por chunk: rows no banco, depois chunk comprimido no bucket.

    Não guarda estado entre chamadas de write(); o scheduler externo pode
    chamar write() de threads diferentes para chunks diferentes.
    """

    def __init__(
        self,
        storage: ObjectStorageClient,
        row_sink: RelationalRowSink,
        compressor: Compressor,
        insert_spec: InsertSpec,
        key_template: str,
        path: str = "",
        path_slicer: Optional[Callable[[str], str]] = None,
        key_resolver: Optional[ObjectKeyResolver] = None,
        reduced_redundancy: bool = False,
        atomic_chunk: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Inicializa o orquestrador.

        Args:
            storage: Cliente do object store (exists + put_stream)
            row_sink: Sink relacional
            compressor: Compressor ativo
            insert_spec: Tabela e colunas do insert
            key_template: Template da key (s3_object_key_format)
            path: Prefixo da key (pode conter códigos strftime)
            path_slicer: Expande o path no instante do write (default: UTC)
            key_resolver: Resolvedor de key (default: sem max_index)
            reduced_redundancy: Storage class REDUCED_REDUNDANCY no upload
            atomic_chunk: Se True, todas as rows numa transação só
            logger: Logger do componente
        """
        self.storage = storage
        self.row_sink = row_sink
        self.compressor = compressor
        self.insert_spec = insert_spec
        self.key_template = key_template
        self.path = path
        self.logger = logger or logging.getLogger(__name__)
        self.path_slicer = path_slicer or make_path_slicer(localtime=False)
        self.key_resolver = key_resolver or ObjectKeyResolver(logger=self.logger)
        self.reduced_redundancy = reduced_redundancy
        self.atomic_chunk = atomic_chunk

    @classmethod
    def from_config(
        cls,
        config: SinkConfig,
        registry: CompressorRegistry,
        logger: Optional[logging.Logger] = None,
    ) -> "WriteOrchestrator":
        """
        Monta o orquestrador e seus componentes a partir da configuração.

        Não faz chamadas de rede: o bootstrap do bucket fica em
        ObjectStorageClient.start().
        """
        config.validate()

        storage = ObjectStorageClient(
            bucket=config.s3_bucket,
            endpoint=config.s3_endpoint,
            access_key=config.aws_key_id,
            secret_key=config.aws_sec_key,
            region=config.s3_region,
            secure=config.use_ssl,
            proxy_uri=config.proxy_uri,
            server_side_encryption=config.use_server_side_encryption,
            logger=logger,
        )
        row_sink = RelationalRowSink(config.relational_url(), logger=logger)

        return cls(
            storage=storage,
            row_sink=row_sink,
            compressor=registry.create(config.store_as, logger=logger),
            insert_spec=InsertSpec(table=config.table, columns=tuple(config.column_list)),
            key_template=config.s3_object_key_format,
            path=config.path,
            path_slicer=make_path_slicer(localtime=config.localtime),
            key_resolver=ObjectKeyResolver(max_index=config.max_key_index, logger=logger),
            reduced_redundancy=config.reduced_redundancy,
            atomic_chunk=config.atomic_chunk,
            logger=logger,
        )

    # =========================================================================
    # Write
    # =========================================================================

    def write(self, chunk: Chunk) -> WriteResult:
        """
        Escreve um chunk: rows no banco e objeto comprimido no bucket.

        Args:
            chunk: Chunk vindo do buffer (não é alterado)

        Returns:
            WriteResult com key, rows inseridas e bytes enviados

        Raises:
            SinkError (ou subclasse): falha em qualquer etapa; uma única
                exceção para o chunk inteiro
        """
        state = WriteState.DECODING
        try:
            bodies = self._decode(chunk)

            state = WriteState.INSERTING
            rows_inserted = self._insert_rows(bodies)

            state = WriteState.KEY_RESOLVING
            key = self._resolve_key(chunk)

            state = WriteState.COMPRESSING
            with transient_buffer(logger=self.logger) as tmp:
                self._compress(chunk, tmp)
                length = tmp.tell()
                tmp.seek(0)

                state = WriteState.UPLOADING
                etag = self.storage.put_stream(
                    key,
                    tmp,
                    length,
                    content_type=self.compressor.content_type,
                    reduced_redundancy=self.reduced_redundancy,
                )
        except Exception as e:
            self.logger.error(
                f"Write do chunk {chunk.key} falhou na etapa {state.value}: "
                f"{type(e).__name__}: {e}"
            )
            raise

        self.logger.info(
            f"Chunk {chunk.key} escrito: key={key}, rows={rows_inserted}, bytes={length}"
        )
        return WriteResult(
            key=key,
            rows_inserted=rows_inserted,
            bytes_uploaded=length,
            etag=etag,
            state=WriteState.DONE,
        )

    # =========================================================================
    # Etapas
    # =========================================================================

    def _decode(self, chunk: Chunk) -> list[Any]:
        try:
            return [to_bind_value(body) for body in chunk.bodies()]
        except (TypeError, ValueError) as e:
            raise DecodingError(f"Erro ao decodificar records do chunk {chunk.key}: {e}") from e

    def _insert_rows(self, bodies: list[Any]) -> int:
        """Row id sequencial começando em 1, na ordem do chunk."""
        table = self.insert_spec.table
        columns = self.insert_spec.columns
        rows = [[row_id, body] for row_id, body in enumerate(bodies, start=1)]

        if self.atomic_chunk:
            return self.row_sink.insert_rows(table, columns, rows)

        for values in rows:
            self.row_sink.insert_row(table, columns, values)
        return len(rows)

    def _resolve_key(self, chunk: Chunk) -> str:
        values = {
            "path": self.path_slicer(self.path),
            "time_slice": chunk.key,
            "file_extension": self.compressor.extension,
        }
        return self.key_resolver.resolve(self.key_template, values, self.storage.exists)

    def _compress(self, chunk: Chunk, output) -> None:
        try:
            self.compressor.compress(chunk, output)
        except SinkError:
            raise
        except Exception as e:
            raise CompressionError(
                f"Erro ao comprimir chunk {chunk.key} com {self.compressor.name}: {e}"
            ) from e
