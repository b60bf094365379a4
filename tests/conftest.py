"""
Configuração global do pytest para testes do chunk-sink.

Este arquivo configura o PYTHONPATH para que os imports funcionem sem
instalar o pacote, e define fixtures compartilhadas.
"""

import sys
from pathlib import Path

import pytest

# Adiciona o diretório raiz do projeto ao path
root_path = Path(__file__).parent.parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

from chunk_sink.models import Chunk, Record  # noqa: E402


@pytest.fixture
def make_chunk():
    """Cria um chunk com um record por body."""

    def _make(bodies, key="20240101"):
        records = [
            Record(tag="app.events", timestamp=1704067200.0 + i, body=body)
            for i, body in enumerate(bodies)
        ]
        return Chunk(key=key, records=records)

    return _make


@pytest.fixture
def sqlite_url(tmp_path):
    """URL de um banco SQLite em arquivo (sobrevive entre conexões)."""
    return f"sqlite:///{tmp_path / 'sink.db'}"
