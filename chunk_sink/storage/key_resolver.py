"""
Resolução da key do objeto no bucket.

Template com placeholders %{name}. Placeholders suportados:
- %{path}: prefixo configurado, com códigos strftime já expandidos
- %{time_slice}: identificador do time slice do chunk
- %{file_extension}: extensão do compressor ativo
- %{index}: contador numérico, começa em 0

Placeholders desconhecidos viram string vazia.
"""

import logging
import re
import time
from typing import Any, Callable, Mapping, Optional

from ..errors import ConfigurationError

PLACEHOLDER_PATTERN = re.compile(r"%\{([^}]+)\}")

DEFAULT_KEY_FORMAT = "%{path}%{time_slice}_%{index}.%{file_extension}"


def render_key(template: str, values: Mapping[str, Any]) -> str:
    """Substitui cada %{name} por values[name] (ou "" se ausente)."""

    def _substitute(match: re.Match) -> str:
        value = values.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


def path_slicer(localtime: bool = False) -> Callable[[str], str]:
    """
    Retorna função que expande códigos strftime do path no instante atual.

    Args:
        localtime: Se True usa hora local, senão UTC
    """
    to_struct = time.localtime if localtime else time.gmtime

    def _slice(path: str) -> str:
        return time.strftime(path, to_struct())

    return _slice


class ObjectKeyResolver:
    """
    Calcula a primeira key ainda inexistente para um template.

    O oráculo de existência (`exists`) é externo e pode falhar; a exceção
    dele sobe sem tratamento. A verificação não é transacional com o
    upload seguinte.
    """

    def __init__(
        self,
        max_index: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            max_index: Limite opcional para o index. None = sem limite
                (o loop só para pelo guard de não-progresso).
            logger: Logger do componente
        """
        self.max_index = max_index
        self.logger = logger or logging.getLogger(__name__)

    def resolve(
        self,
        template: str,
        values: Mapping[str, Any],
        exists: Callable[[str], bool],
    ) -> str:
        """
        Resolve a key.

        Args:
            template: Template com placeholders %{...}
            values: Substituições sem "index" (ignorado se presente)
            exists: Oráculo de existência da key no destino

        Returns:
            Key com o menor index que ainda não existe

        Raises:
            ConfigurationError: Se o template não varia com %{index}, ou se
                max_index foi excedido
        """
        substitutions = dict(values)
        index = 0
        substitutions["index"] = index
        candidate = render_key(template, substitutions)

        while exists(candidate):
            self.logger.debug(f"Key já existe, tentando próximo index: {candidate}")
            index += 1
            substitutions["index"] = index
            previous = candidate
            candidate = render_key(template, substitutions)

            if candidate == previous:
                raise ConfigurationError(
                    "duplicated path is generated. use %{index} in "
                    f"s3_object_key_format: path = {candidate}"
                )

            if self.max_index is not None and index > self.max_index:
                raise ConfigurationError(
                    f"index excedeu max_index={self.max_index} "
                    f"para s3_object_key_format: path = {previous}"
                )

        return candidate
