"""
Configurações do chunk-sink.

Os defaults seguem os parâmetros do plugin de saída original
(s3_object_key_format, store_as, ora_*, table, columns...).
"""

import os
import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import URL

from .errors import ConfigurationError
from .storage.key_resolver import DEFAULT_KEY_FORMAT

COLUMN_SEPARATOR = re.compile(r"\s*,\s*")


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value if value else None


@dataclass
class SinkConfig:
    """Configuração de uma instância do sink."""

    # Object key
    path: str = ""
    s3_object_key_format: str = DEFAULT_KEY_FORMAT
    localtime: bool = False
    max_key_index: Optional[int] = None  # None = sem limite

    # S3 / MinIO
    s3_bucket: str = ""
    s3_endpoint: str = "s3.amazonaws.com"
    s3_region: Optional[str] = None
    aws_key_id: Optional[str] = None
    aws_sec_key: Optional[str] = None
    use_ssl: bool = True
    use_server_side_encryption: Optional[str] = None  # "AES256"
    proxy_uri: Optional[str] = None
    reduced_redundancy: bool = False
    auto_create_bucket: bool = True
    check_apikey_on_start: bool = True

    # Compressão
    store_as: str = "gzip"

    # Oracle
    ora_host: str = "localhost"
    ora_port: int = 1521
    ora_sid: Optional[str] = None
    ora_user: Optional[str] = None
    ora_passwd: Optional[str] = None
    database_url: Optional[str] = None  # Sobrescreve a URL montada com ora_*

    # Insert
    table: Optional[str] = None
    columns: Optional[str] = None  # "id,body"
    atomic_chunk: bool = False  # True = uma transação por chunk

    @property
    def column_list(self) -> list[str]:
        """Colunas separadas por vírgula, sem espaços nas bordas."""
        if not self.columns:
            return []
        return [c for c in COLUMN_SEPARATOR.split(self.columns.strip()) if c]

    def relational_url(self):
        """URL SQLAlchemy do banco relacional."""
        if self.database_url:
            return self.database_url
        return URL.create(
            "oracle+oracledb",
            username=self.ora_user,
            password=self.ora_passwd,
            host=self.ora_host,
            port=self.ora_port,
            database=self.ora_sid,
        )

    def validate(self) -> None:
        """
        Validação mínima antes de montar o sink.

        Raises:
            ConfigurationError: bucket/tabela/colunas ausentes ou colunas != 2
        """
        if not self.s3_bucket:
            raise ConfigurationError("s3_bucket é obrigatório")
        if not self.table:
            raise ConfigurationError("table é obrigatório")

        columns = self.column_list
        if len(columns) != 2:
            raise ConfigurationError(
                f"columns deve ter exatamente 2 colunas (row id, body): {self.columns!r}"
            )
        if self.max_key_index is not None and self.max_key_index < 0:
            raise ConfigurationError(f"max_key_index inválido: {self.max_key_index}")

    @classmethod
    def from_env(cls) -> "SinkConfig":
        """Carrega configuração de variáveis de ambiente."""
        max_key_index = os.getenv("MAX_KEY_INDEX")
        return cls(
            path=os.getenv("S3_PATH", ""),
            s3_object_key_format=os.getenv("S3_OBJECT_KEY_FORMAT", DEFAULT_KEY_FORMAT),
            localtime=_env_bool("LOCALTIME", False),
            max_key_index=int(max_key_index) if max_key_index else None,
            s3_bucket=os.getenv("S3_BUCKET", ""),
            s3_endpoint=os.getenv("S3_ENDPOINT", "s3.amazonaws.com"),
            s3_region=_env_optional("S3_REGION"),
            aws_key_id=_env_optional("AWS_KEY_ID"),
            aws_sec_key=_env_optional("AWS_SEC_KEY"),
            use_ssl=_env_bool("USE_SSL", True),
            use_server_side_encryption=_env_optional("USE_SERVER_SIDE_ENCRYPTION"),
            proxy_uri=_env_optional("PROXY_URI"),
            reduced_redundancy=_env_bool("REDUCED_REDUNDANCY", False),
            auto_create_bucket=_env_bool("AUTO_CREATE_BUCKET", True),
            check_apikey_on_start=_env_bool("CHECK_APIKEY_ON_START", True),
            store_as=os.getenv("STORE_AS", "gzip"),
            ora_host=os.getenv("ORA_HOST", "localhost"),
            ora_port=int(os.getenv("ORA_PORT", "1521")),
            ora_sid=_env_optional("ORA_SID"),
            ora_user=_env_optional("ORA_USER"),
            ora_passwd=_env_optional("ORA_PASSWD"),
            database_url=_env_optional("DATABASE_URL"),
            table=_env_optional("TABLE"),
            columns=_env_optional("COLUMNS"),
            atomic_chunk=_env_bool("ATOMIC_CHUNK", False),
        )
