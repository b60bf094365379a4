"""
Insert de rows no banco relacional.

Protocolo por chamada de insert_row():
    abre sessão/conexão nova → bind posicional → execute → commit → fecha

O engine usa NullPool: cada sessão abre uma conexão real e o close()
desconecta de fato. Cada row é sua própria transação. Se a row k falha,
as rows 1..k-1 já estão commitadas e as rows k+1..n não são tentadas.
Para atomicidade por chunk use insert_rows().
"""

import logging
import re
from typing import Any, Optional, Sequence, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from ..errors import ConfigurationError, RelationalError, RowArityError

# Identificador SQL simples, com prefixo de schema opcional (SCHEMA.TABELA)
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_$#]*(\.[A-Za-z_][A-Za-z0-9_$#]*)?$")


def _check_identifier(name: str, kind: str) -> str:
    if not IDENTIFIER_PATTERN.match(name or ""):
        raise ConfigurationError(f"Identificador de {kind} inválido: {name!r}")
    return name


def build_insert_sql(table: str, columns: Sequence[str]) -> str:
    """
    Monta o statement de insert com placeholders ordinais.

    Exemplo:
        build_insert_sql("events", ["id", "body"])
        → "insert into events (id, body) values (:1, :2)"

    Raises:
        ConfigurationError: Tabela/coluna inválida ou lista de colunas vazia
    """
    _check_identifier(table, "tabela")
    if not columns:
        raise ConfigurationError(f"Nenhuma coluna configurada para a tabela {table}")
    for column in columns:
        _check_identifier(column, "coluna")

    placeholders = ", ".join(f":{i}" for i in range(1, len(columns) + 1))
    return f"insert into {table} ({', '.join(columns)}) values ({placeholders})"


def bind_params(values: Sequence[Any]) -> dict[str, Any]:
    """Converte valores em ordem para o dict de binds ordinais {"1": v1, ...}."""
    return {str(i): value for i, value in enumerate(values, start=1)}


class RelationalRowSink:
    """
    Executa um insert parametrizado por row.

    Sem estado mutável compartilhado entre chamadas: seguro para uso
    concorrente por várias threads (ao custo de uma conexão por row).
    """

    def __init__(
        self,
        database_url: Union[str, URL, None] = None,
        engine: Optional[Engine] = None,
        echo: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Inicializa o sink.

        Args:
            database_url: URL SQLAlchemy do banco (ex: oracle+oracledb://...)
            engine: Engine já construído (ignora database_url)
            echo: Se True, loga queries SQL
            logger: Logger do componente
        """
        if engine is None and database_url is None:
            raise ConfigurationError("RelationalRowSink precisa de database_url ou engine")

        self.logger = logger or logging.getLogger(__name__)
        if engine is None:
            try:
                engine = create_engine(database_url, echo=echo, poolclass=NullPool)
            except (SQLAlchemyError, ImportError) as e:
                raise ConfigurationError(f"Não foi possível criar engine SQLAlchemy: {e}") from e
        self._engine = engine
        self._session_factory = sessionmaker(bind=self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def _get_session(self) -> Session:
        """Cria uma nova sessão."""
        return self._session_factory()

    # =========================================================================
    # Inserts
    # =========================================================================

    def insert_row(
        self,
        table: str,
        columns: Sequence[str],
        values: Sequence[Any],
    ) -> None:
        """
        Insere uma row em sua própria conexão e transação.

        Args:
            table: Nome da tabela
            columns: Colunas em ordem
            values: Valores na mesma ordem das colunas

        Raises:
            RowArityError: len(values) != len(columns), antes de abrir conexão
            ConfigurationError: Tabela/coluna inválida
            RelationalError: Falha de connect/execute/commit
        """
        if len(values) != len(columns):
            raise RowArityError(
                f"Row com {len(values)} valores para {len(columns)} colunas em {table}"
            )

        sql = build_insert_sql(table, columns)

        try:
            with self._get_session() as session:
                session.execute(text(sql), bind_params(values))
                session.commit()
        except SQLAlchemyError as e:
            raise RelationalError(f"Erro ao inserir row em {table}: {e}") from e

        self.logger.debug(f"Row inserida em {table}: {len(values)} valores")

    def insert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> int:
        """
        Insere todas as rows numa única conexão e transação.

        Muda a semântica em relação a insert_row(): uma falha em qualquer
        row desfaz todas as rows da chamada.

        Returns:
            Quantidade de rows inseridas

        Raises:
            RowArityError: Alguma row com aridade errada (nada é executado)
            RelationalError: Falha de connect/execute/commit (rollback total)
        """
        for position, values in enumerate(rows, start=1):
            if len(values) != len(columns):
                raise RowArityError(
                    f"Row {position} com {len(values)} valores para "
                    f"{len(columns)} colunas em {table}"
                )

        if not rows:
            return 0

        sql = build_insert_sql(table, columns)

        try:
            with self._get_session() as session:
                session.execute(text(sql), [bind_params(values) for values in rows])
                session.commit()
        except SQLAlchemyError as e:
            raise RelationalError(f"Erro ao inserir {len(rows)} rows em {table}: {e}") from e

        self.logger.debug(f"{len(rows)} rows inseridas em {table} numa transação")
        return len(rows)
