"""Utilitários internos do chunk-sink."""

from .transient import transient_buffer, TEMP_PREFIX

__all__ = ["transient_buffer", "TEMP_PREFIX"]
