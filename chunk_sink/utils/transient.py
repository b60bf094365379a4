"""
Buffer temporário local para o chunk comprimido.

O arquivo é liberado em todos os caminhos (sucesso, falha de upload,
abort antecipado). Uma falha ao liberar nunca substitui um erro que já
está subindo: nesse caso ela só é logada.
"""

import logging
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional

from ..errors import ResourceError

TEMP_PREFIX = "s3-"


@contextmanager
def transient_buffer(
    prefix: str = TEMP_PREFIX,
    logger: Optional[logging.Logger] = None,
) -> Iterator[BinaryIO]:
    """
    Abre um arquivo temporário anônimo em modo w+b.

    Raises:
        ResourceError: Falha ao criar o arquivo, ou ao fechá-lo quando
            nenhum outro erro estava em andamento
    """
    log = logger or logging.getLogger(__name__)

    try:
        tmp = tempfile.TemporaryFile(prefix=prefix)
    except OSError as e:
        raise ResourceError(f"Não foi possível criar buffer temporário: {e}") from e

    try:
        yield tmp
    except BaseException:
        try:
            tmp.close()
        except OSError as close_error:
            log.warning(f"Falha ao liberar buffer temporário após erro: {close_error}")
        raise
    else:
        try:
            tmp.close()
        except OSError as e:
            raise ResourceError(f"Não foi possível liberar buffer temporário: {e}") from e
