"""
Exceções do chunk-sink.

Toda falha fatal de um write(chunk) chega ao chamador como uma única
exceção derivada de SinkError. Nenhuma etapa faz retry: o retry do chunk
inteiro é responsabilidade do scheduler que chama o sink.
"""


class SinkError(Exception):
    """Base para todos os erros do sink."""


class ConfigurationError(SinkError):
    """Configuração inválida (template de key, identificadores, bucket, credenciais)."""


class StoreProbeError(SinkError):
    """Falha ao verificar a existência de uma key no object store."""


class StoreUploadError(SinkError):
    """Falha ao enviar o objeto para o object store."""


class RelationalError(SinkError):
    """Falha de connect/bind/execute/commit no banco relacional."""


class RowArityError(RelationalError):
    """Quantidade de valores diferente da quantidade de colunas."""


class CompressionError(SinkError):
    """Falha de I/O ou encoding ao comprimir o chunk."""


class ResourceError(SinkError):
    """Falha ao alocar ou liberar o buffer temporário local."""


class DecodingError(SinkError):
    """Body de um record que não pode ser convertido para valor de bind."""
