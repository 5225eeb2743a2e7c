from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator, Optional
import tempfile

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, sessionmaker
import structlog

from testdeck.config.settings import settings

logger = structlog.get_logger()

FALLBACK_DB_NAME = "testdeck_fallback.db"


def sqlite_file_path(db_url: str) -> Optional[Path]:
    """Absolute path of the database file for file-based sqlite URLs, else None"""
    try:
        url = make_url(db_url)
    except ArgumentError as e:
        logger.debug("Unparseable database url", error=str(e), url=db_url)
        return None
    if not url.drivername.startswith("sqlite") or not url.database or url.database == ":memory:":
        return None
    path = Path(url.database)
    return path if path.is_absolute() else (Path.cwd() / path).resolve()


def _is_writable(directory: Path) -> bool:
    probe = directory / ".writable_test"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        probe.write_text("ok")
        probe.unlink()
    except OSError as e:
        logger.error("Database directory not writable", directory=str(directory), error=str(e))
        return False
    return True


def _resolve_database_url(original_url: str) -> str:
    """Create the sqlite parent directory, or switch to a temp file when it cannot be written"""
    db_file = sqlite_file_path(original_url)
    if db_file is None:
        return original_url

    logger.info("Resolved sqlite path", resolved=str(db_file), original=original_url)
    if _is_writable(db_file.parent):
        return original_url

    fallback = f"sqlite:///{(Path(tempfile.gettempdir()) / FALLBACK_DB_NAME).as_posix()}"
    logger.warning("Using fallback sqlite path", fallback=fallback)
    return fallback


def _create_engine(db_url: str):
    # sqlite connections are shared across the threadpool FastAPI runs sync deps in
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, connect_args=connect_args)


resolved_db_url = _resolve_database_url(settings.database_url)
engine = _create_engine(resolved_db_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_database() -> Generator[Session, None, None]:
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts; rolled back when the block raises"""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables() -> None:
    """Create every table of the relational backend"""
    from testdeck.models.database import Base

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready", tables=sorted(Base.metadata.tables))
