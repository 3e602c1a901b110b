"""
Accès à la base relationnelle (SQLAlchemy, mode synchrone).

- engine / SessionLocal construits depuis DATABASE_URL
- Base déclarative partagée par les modèles (freshleap.models)
- get_db: dépendance FastAPI, une Session par requête, rollback sur erreur
- init_db: crée les tables manquantes (pas d'outil de migration)
"""
import logging
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from freshleap.config import DATABASE_URL, DB_ECHO

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str, echo: bool = False) -> Engine:
    kwargs = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # Base mémoire: une seule connexion partagée sinon chaque session voit une base vide
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    eng = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(eng, "connect")
        def _sqlite_fk_on(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return eng


engine = make_engine(DATABASE_URL, echo=DB_ECHO)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def get_db() -> Iterator[Session]:
    """Dépendance FastAPI: ouvre une Session, la referme en fin de requête."""
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    # Import des modèles pour peupler Base.metadata
    import freshleap.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("database.init tables=%s", len(Base.metadata.tables))


def ping_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception("database.ping failed")
        return False
