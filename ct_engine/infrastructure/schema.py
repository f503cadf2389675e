"""Bootstrap del esquema PostgreSQL (raw_scans + equipment_metrics).

equipment_design pertenece al colaborador de configuración; solo se crea
si no existe, para entornos locales.
"""

from __future__ import annotations

import logging
import pathlib

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = pathlib.Path(__file__).parent / "migrations"


def load_statements(sql_file: pathlib.Path) -> list[str]:
    sql_content = sql_file.read_text(encoding="utf-8")
    return [s.strip() for s in sql_content.split(";") if s.strip()]


def ensure_schema(engine: Engine) -> None:
    """Crea tablas/índices si no existen. Idempotente."""
    sql_file = MIGRATIONS_DIR / "postgres_001.sql"
    if not sql_file.exists():
        logger.warning("[PostgreSQL] Migration file not found: %s - skipping", sql_file)
        return

    logger.info("[PostgreSQL] Ensuring schema exists")
    try:
        with engine.begin() as conn:
            for statement in load_statements(sql_file):
                conn.execute(text(statement))
        logger.info("[PostgreSQL] Schema OK")
    except Exception as e:
        logger.exception("[PostgreSQL] Schema creation failed: %s", e)
        raise
