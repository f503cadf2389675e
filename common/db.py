from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote_plus

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from .config import Settings, get_settings


logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def build_sqlalchemy_url(settings: Settings) -> str:
    if settings.database_url:
        return settings.database_url

    # Escapar usuario/contraseña con caracteres especiales
    return (
        f"postgresql+psycopg2://{quote_plus(settings.db_user)}:{quote_plus(settings.db_password)}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def get_engine() -> Engine:
    """Engine singleton; se crea en el primer uso, no al importar el módulo."""
    global _engine
    if _engine is not None:
        return _engine

    settings = get_settings()

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine PostgreSQL host=%s port=%s db=%s user=%s",
        settings.db_host,
        settings.db_port,
        settings.db_name,
        settings.db_user,
    )

    _engine = create_engine(
        build_sqlalchemy_url(settings),
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=10,
        max_overflow=10,
        future=True,
    )
    return _engine


def check_connection(engine: Engine) -> bool:
    """Test de conexión al arrancar: sin BD el proceso no puede continuar."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
        return True
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")
        return False


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
