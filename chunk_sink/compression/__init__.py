"""
Módulo de compressão do chunk antes do upload.

Compressores disponíveis (default_registry):
- gzip: application/x-gzip (.gz)
- text: text/plain (.txt)
- json: application/json (.json), mesmos bytes do text
"""

from .compressors import Compressor, GzipCompressor, TextCompressor, JsonCompressor
from .registry import CompressorRegistry, default_registry, FALLBACK_COMPRESSOR

__all__ = [
    "Compressor",
    "GzipCompressor",
    "TextCompressor",
    "JsonCompressor",
    "CompressorRegistry",
    "default_registry",
    "FALLBACK_COMPRESSOR",
]
