"""
Módulo de armazenamento de objetos (S3/MinIO) e resolução de keys.
"""

from .object_storage import ObjectStorageClient
from .key_resolver import ObjectKeyResolver, render_key, path_slicer, DEFAULT_KEY_FORMAT

__all__ = [
    "ObjectStorageClient",
    "ObjectKeyResolver",
    "render_key",
    "path_slicer",
    "DEFAULT_KEY_FORMAT",
]
