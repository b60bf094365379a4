"""
Modelos de dados do sink: Record, Chunk e InsertSpec.

O Chunk pertence à camada de buffering (upstream). Este pacote só lê:
nenhuma etapa do write altera o conteúdo de um Chunk.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Iterable, Iterator, Union


@dataclass(frozen=True)
class Record:
    """Um evento de log estruturado dentro de um chunk."""

    tag: str
    timestamp: Union[datetime, float]
    body: Any

    def to_line(self) -> bytes:
        """Serializa o record como uma linha JSON (terminada em \\n)."""
        if isinstance(self.timestamp, datetime):
            time_value: Any = self.timestamp.isoformat()
        else:
            time_value = self.timestamp

        payload = {"tag": self.tag, "time": time_value, "body": self.body}
        return (json.dumps(payload, ensure_ascii=False, default=str) + "\n").encode("utf-8")


@dataclass(frozen=True)
class Chunk:
    """
    Lote ordenado e imutável de records entregue ao sink.

    Attributes:
        key: Identificador do time slice (ex: "2024010112")
        records: Records na ordem do buffer
        data: Payload já formatado pelo upstream. Se vazio, os bytes brutos
            são as linhas JSON dos records.
    """

    key: str
    records: tuple[Record, ...] = field(default_factory=tuple)
    data: bytes = b""

    def __post_init__(self):
        # Aceita list na construção, mas guarda sempre tuple
        if not isinstance(self.records, tuple):
            object.__setattr__(self, "records", tuple(self.records))

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def bodies(self) -> list[Any]:
        """Retorna o body de cada record, na ordem do chunk."""
        return [record.body for record in self.records]

    def raw_bytes(self) -> bytes:
        """Bytes brutos do chunk (payload do upstream ou linhas JSON)."""
        if self.data:
            return self.data
        return b"".join(record.to_line() for record in self.records)

    def write_to(self, stream: BinaryIO) -> int:
        """Escreve os bytes brutos em `stream` e retorna quantos bytes foram escritos."""
        raw = self.raw_bytes()
        stream.write(raw)
        return len(raw)

    @classmethod
    def from_jsonl(cls, key: str, lines: Iterable[Union[str, bytes]]) -> "Chunk":
        """
        Constrói um chunk a partir de linhas JSON.

        Cada linha deve ser um objeto com "body" e, opcionalmente, "tag" e
        "time". Linhas em branco são ignoradas. O payload original é mantido
        em `data`, byte a byte.

        Raises:
            ValueError: Se alguma linha não for um objeto JSON
        """
        records = []
        raw_lines = []

        for line in lines:
            raw = line.encode("utf-8") if isinstance(line, str) else line
            if not raw.strip():
                continue
            if not raw.endswith(b"\n"):
                raw += b"\n"

            obj = json.loads(raw)
            if not isinstance(obj, dict):
                raise ValueError(f"Linha JSON não é um objeto: {raw[:80]!r}")

            records.append(
                Record(
                    tag=str(obj.get("tag", "")),
                    timestamp=obj.get("time", 0.0),
                    body=obj.get("body"),
                )
            )
            raw_lines.append(raw)

        return cls(key=key, records=tuple(records), data=b"".join(raw_lines))


@dataclass(frozen=True)
class InsertSpec:
    """Tabela e colunas (em ordem) usadas no insert de cada row."""

    table: str
    columns: tuple[str, ...]

    def __post_init__(self):
        if not isinstance(self.columns, tuple):
            object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def arity(self) -> int:
        """Quantidade de valores que cada row precisa fornecer."""
        return len(self.columns)
