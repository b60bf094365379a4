"""
chunk-sink: estágio de saída de um pipeline de logs.

Para cada chunk bufferizado:
1. Insere o body de cada record numa tabela relacional (uma transação por row)
2. Comprime o chunk e envia para S3/MinIO numa key que ainda não existe
"""

from .config import SinkConfig
from .errors import (
    SinkError,
    ConfigurationError,
    StoreProbeError,
    StoreUploadError,
    RelationalError,
    RowArityError,
    CompressionError,
    DecodingError,
    ResourceError,
)
from .models import Chunk, Record, InsertSpec

__all__ = [
    "SinkConfig",
    "SinkError",
    "ConfigurationError",
    "StoreProbeError",
    "StoreUploadError",
    "RelationalError",
    "RowArityError",
    "CompressionError",
    "DecodingError",
    "ResourceError",
    "Chunk",
    "Record",
    "InsertSpec",
]
