#!/usr/bin/env python3
"""
Envia um arquivo JSON-lines como um único chunk.

Lê a configuração das variáveis de ambiente (ver SinkConfig.from_env),
valida credenciais/bucket e executa o write completo:
rows no banco relacional + chunk comprimido no S3/MinIO.

Uso:
    python scripts/ship_jsonl.py events.jsonl
    python scripts/ship_jsonl.py events.jsonl --time-slice 2024010112 --verbose
"""

import argparse
import logging
import os
import sys
import time

# Adiciona a raiz do projeto ao path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from chunk_sink import Chunk, SinkConfig, SinkError  # noqa: E402
from chunk_sink.compression import default_registry  # noqa: E402
from chunk_sink.orchestrator import WriteOrchestrator  # noqa: E402


def main():
    parser = argparse.ArgumentParser(
        description="Envia um arquivo JSON-lines como chunk",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemplos:
    S3_BUCKET=logs TABLE=events COLUMNS=id,body python ship_jsonl.py events.jsonl
    python ship_jsonl.py events.jsonl --time-slice 20240101 --skip-bootstrap
        """,
    )

    parser.add_argument(
        "input",
        help="Arquivo JSON-lines (um objeto com 'body' por linha)",
    )
    parser.add_argument(
        "--time-slice",
        default=time.strftime("%Y%m%d%H", time.gmtime()),
        help="Identificador do time slice (default: hora UTC atual, %%Y%%m%%d%%H)",
    )
    parser.add_argument(
        "--skip-bootstrap",
        action="store_true",
        help="Não valida credenciais nem cria o bucket",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Mostra detalhes adicionais",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logger = logging.getLogger("ship_jsonl")

    try:
        config = SinkConfig.from_env()
        orchestrator = WriteOrchestrator.from_config(config, default_registry(), logger=logger)

        if not args.skip_bootstrap:
            orchestrator.storage.start(
                auto_create_bucket=config.auto_create_bucket,
                check_credentials=config.check_apikey_on_start,
            )

        with open(args.input, "rb") as f:
            chunk = Chunk.from_jsonl(args.time_slice, f)

        logger.info(f"Chunk {chunk.key}: {len(chunk)} records de {args.input}")
        result = orchestrator.write(chunk)

    except (SinkError, OSError, ValueError) as e:
        logger.error(f"ERRO: {e}")
        return 1

    logger.info(f"OK: key={result.key} rows={result.rows_inserted} bytes={result.bytes_uploaded}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
