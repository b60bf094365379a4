"""
Módulo de orquestração do write de um chunk.

Pipeline:
    Chunk → rows (banco relacional) → key → compressão → upload (S3/MinIO)
"""

from .write_orchestrator import WriteOrchestrator, WriteResult, WriteState, to_bind_value

__all__ = [
    "WriteOrchestrator",
    "WriteResult",
    "WriteState",
    "to_bind_value",
]
