"""
Registry de compressores.

Não existe tabela global: o registry é criado uma vez na inicialização
(default_registry()) e passado por referência para quem precisa dele.
"""

import logging
from typing import Callable, Optional

from ..errors import ConfigurationError
from .compressors import Compressor, GzipCompressor, JsonCompressor, TextCompressor

CompressorFactory = Callable[..., Compressor]

FALLBACK_COMPRESSOR = "text"


class CompressorRegistry:
    """Mapeia nome configurado (store_as) → construtor do compressor."""

    def __init__(self) -> None:
        self._factories: dict[str, CompressorFactory] = {}

    def register(self, name: str, factory: CompressorFactory) -> None:
        """
        Registra um compressor.

        Args:
            name: Nome único (ex: "gzip")
            factory: Callable que aceita `logger=` e retorna um Compressor

        Raises:
            ConfigurationError: Se o nome já estiver registrado
        """
        if not name:
            raise ConfigurationError("Nome de compressor vazio")
        if name in self._factories:
            raise ConfigurationError(f"Compressor já registrado: {name}")
        self._factories[name] = factory

    def lookup(self, name: str) -> CompressorFactory:
        """
        Obtém o construtor registrado para `name`.

        Raises:
            ConfigurationError: Se o nome não estiver registrado
        """
        try:
            return self._factories[name]
        except KeyError:
            raise ConfigurationError(f"Compressor desconhecido: {name}") from None

    def names(self) -> list[str]:
        """Lista os nomes registrados, em ordem alfabética."""
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def create(
        self,
        name: str,
        logger: Optional[logging.Logger] = None,
    ) -> Compressor:
        """
        Instancia o compressor configurado.

        Nome desconhecido não aborta a configuração: cai para "text" e
        emite um warning.
        """
        log = logger or logging.getLogger(__name__)
        try:
            factory = self.lookup(name)
        except ConfigurationError:
            log.warning(f"{name} not found. Use '{FALLBACK_COMPRESSOR}' instead")
            factory = self._factories.get(FALLBACK_COMPRESSOR, TextCompressor)
        return factory(logger=logger)


def default_registry() -> CompressorRegistry:
    """Cria um registry novo com gzip, json e text."""
    registry = CompressorRegistry()
    registry.register("gzip", GzipCompressor)
    registry.register("json", JsonCompressor)
    registry.register("text", TextCompressor)
    return registry
