"""
Estratégias de compressão do chunk.

Cada compressor expõe:
- name: identificador usado no registry (ex: "gzip")
- extension: extensão do arquivo na key do object store
- content_type: MIME type enviado no upload
- compress(chunk, output): escreve os bytes codificados em `output`

Text e Json produzem exatamente os mesmos bytes; Json só muda o rótulo.
"""

import gzip
import logging
from typing import BinaryIO, Optional

from ..models import Chunk


class Compressor:
    """Base dos compressores."""

    name: str = ""
    extension: str = ""
    content_type: str = "application/octet-stream"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def compress(self, chunk: Chunk, output: BinaryIO) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name={self.name}, extension={self.extension})>"


class GzipCompressor(Compressor):
    """Container gzip sobre os bytes brutos do chunk."""

    name = "gzip"
    extension = "gz"
    content_type = "application/x-gzip"

    def compress(self, chunk: Chunk, output: BinaryIO) -> None:
        # GzipFile.close() não fecha o fileobj recebido
        writer = gzip.GzipFile(fileobj=output, mode="wb")
        try:
            chunk.write_to(writer)
        finally:
            writer.close()


class TextCompressor(Compressor):
    """Cópia direta dos bytes brutos."""

    name = "text"
    extension = "txt"
    content_type = "text/plain"

    def compress(self, chunk: Chunk, output: BinaryIO) -> None:
        chunk.write_to(output)


class JsonCompressor(TextCompressor):
    name = "json"
    extension = "json"
    content_type = "application/json"
