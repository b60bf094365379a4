"""
Cliente para armazenamento de objetos (S3/MinIO).

Operações usadas pelo write de um chunk:
- exists(key): oráculo de existência para a resolução da key
- put_stream(key, stream, ...): upload do chunk comprimido

Bootstrap (fora do write): ensure_bucket() e check_credentials(),
chamados por start().
"""

import logging
from typing import BinaryIO, Optional

import urllib3
from minio import Minio
from minio.error import S3Error
from minio.sse import SseS3

from ..errors import ConfigurationError, StoreProbeError, StoreUploadError

# Códigos S3 que significam "objeto não existe" num stat_object
MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "NotFound", "ResourceNotFound"})

STORAGE_CLASS_HEADER = "x-amz-storage-class"


class ObjectStorageClient:
    """
    Cliente para S3/MinIO.

    O bucket é fixo por instância. Sem retry: erros do cliente sobem como
    StoreProbeError / StoreUploadError encadeados à exceção original.
    """

    def __init__(
        self,
        bucket: str,
        endpoint: str = "s3.amazonaws.com",
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: Optional[str] = None,
        secure: bool = True,
        proxy_uri: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
        client: Optional[Minio] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Inicializa o cliente.

        Args:
            bucket: Nome do bucket de destino
            endpoint: Host[:porta] do S3/MinIO
            access_key: Access key (None = credenciais do ambiente/IAM)
            secret_key: Secret key
            region: Região do bucket
            secure: Usar HTTPS
            proxy_uri: Proxy HTTP(S) opcional
            server_side_encryption: "AES256" ativa SSE-S3
            client: Cliente Minio já construído (testes)
            logger: Logger do componente
        """
        self.bucket = bucket
        self.endpoint = endpoint
        self.secure = secure
        self.logger = logger or logging.getLogger(__name__)
        self._sse = SseS3() if server_side_encryption else None

        if client is not None:
            self._client = client
        else:
            http_client = urllib3.ProxyManager(proxy_uri) if proxy_uri else None
            self._client = Minio(
                endpoint,
                access_key=access_key,
                secret_key=secret_key,
                region=region,
                secure=secure,
                http_client=http_client,
            )

    # =========================================================================
    # Bootstrap
    # =========================================================================

    def start(self, auto_create_bucket: bool = True, check_credentials: bool = True) -> None:
        """Valida credenciais (opcional) e garante que o bucket existe."""
        if check_credentials:
            self.check_credentials()
        self.ensure_bucket(auto_create_bucket)

    def check_credentials(self) -> None:
        """
        Faz uma chamada barata à API para validar credenciais/região.

        NoSuchBucket é ignorado (ensure_bucket trata esse caso).

        Raises:
            ConfigurationError: Se a API não puder ser chamada
        """
        try:
            for _ in self._client.list_objects(bucket_name=self.bucket):
                break
        except Exception as e:
            if isinstance(e, S3Error) and e.code == "NoSuchBucket":
                return
            raise ConfigurationError(
                "can't call S3 API. Please check your aws_key_id / aws_sec_key "
                f"or s3_region configuration. error = {e!r}"
            ) from e

    def ensure_bucket(self, auto_create: bool = True) -> None:
        """
        Cria o bucket se não existir.

        Raises:
            ConfigurationError: Se o bucket não existe e auto_create=False, ou
                se a verificação/criação do bucket falhar
        """
        try:
            if self._client.bucket_exists(bucket_name=self.bucket):
                return
        except Exception as e:
            raise ConfigurationError(f"Erro ao verificar bucket {self.bucket}: {e}") from e

        if not auto_create:
            raise ConfigurationError(f"The specified bucket does not exist: bucket = {self.bucket}")

        self.logger.info(f"Creating bucket {self.bucket} on {self.endpoint}")
        try:
            self._client.make_bucket(bucket_name=self.bucket)
        except Exception as e:
            raise ConfigurationError(f"Erro ao criar bucket {self.bucket}: {e}") from e

    # =========================================================================
    # Operações principais
    # =========================================================================

    def exists(self, key: str) -> bool:
        """
        Verifica se um objeto existe.

        Raises:
            StoreProbeError: Se a verificação falhar por outro motivo que
                não "objeto inexistente"
        """
        try:
            self._client.stat_object(bucket_name=self.bucket, object_name=key)
            return True
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                return False
            raise StoreProbeError(f"Erro ao verificar key {key}: {e}") from e
        except Exception as e:
            raise StoreProbeError(f"Erro ao verificar key {key}: {e}") from e

    def put_stream(
        self,
        key: str,
        stream: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
        reduced_redundancy: bool = False,
    ) -> str:
        """
        Envia `length` bytes de `stream` para `key`.

        Args:
            key: Chave do objeto
            stream: Arquivo binário posicionado no início do conteúdo
            length: Tamanho em bytes
            content_type: MIME type do conteúdo
            reduced_redundancy: Storage class REDUCED_REDUNDANCY em vez de STANDARD

        Returns:
            ETag do objeto armazenado

        Raises:
            StoreUploadError: Se o upload falhar
        """
        storage_class = "REDUCED_REDUNDANCY" if reduced_redundancy else "STANDARD"

        try:
            result = self._client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=stream,
                length=length,
                content_type=content_type,
                metadata={STORAGE_CLASS_HEADER: storage_class},
                sse=self._sse,
            )
        except Exception as e:
            raise StoreUploadError(f"Erro ao enviar {key} para bucket {self.bucket}: {e}") from e

        self.logger.debug(f"Upload concluído: {key} ({length} bytes, {content_type})")
        return result.etag
