"""
Módulo de escrita relacional (SQLAlchemy).

Um insert parametrizado por row, cada um com conexão e commit próprios.
"""

from .row_sink import RelationalRowSink, build_insert_sql, bind_params

__all__ = [
    "RelationalRowSink",
    "build_insert_sql",
    "bind_params",
]
