"""Conexión a la base de datos con SQLAlchemy y coordinador de transacciones."""

import logging
from typing import Callable, TypeVar

from sqlalchemy import create_engine, exc
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import AuthServiceError, StorageError, UserAlreadyExists

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Clase base para los modelos declarativos (User hereda de ella).
Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Creates the SQLAlchemy engine: the shared connection pool for all requests.
    pool_pre_ping=True recycles connections dropped by the server.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        # SQLite: requests run in worker threads and wait for the write lock.
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False: returned users stay readable after the session closes.
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def check_connection(engine: Engine) -> bool:
    """Intenta conectar para verificar credenciales y disponibilidad al inicio."""
    try:
        with engine.connect():
            logger.info("Conexión a la base de datos establecida exitosamente.")
        return True
    except exc.SQLAlchemyError as e:
        logger.error(f"Error al conectar con la base de datos: {e}", exc_info=True)
        return False


def translate_storage_error(error: exc.SQLAlchemyError) -> AuthServiceError:
    """
    Maps a driver/ORM failure onto the service taxonomy.
    The users table only carries UNIQUE constraints on username and email,
    so an integrity violation means the account already exists.
    """
    if isinstance(error, exc.IntegrityError):
        return UserAlreadyExists()
    return StorageError(str(error))


class TransactionCoordinator:
    """
    Runs a unit of work inside a single database transaction.

    The unit of work receives the transaction handle (a Session with an open
    transaction) and must pass it explicitly to the repository. Every call
    opens its own session; an outer transaction is never reused.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def run_in_transaction(self, unit_of_work: Callable[[Session], T]) -> T:
        session = self._session_factory()
        try:
            session.begin()
            result = unit_of_work(session)
            session.commit()
            return result
        except exc.SQLAlchemyError as e:
            self._rollback(session)
            raise translate_storage_error(e) from e
        except BaseException:
            # Errores de dominio, fallos inesperados e interrupciones: siempre rollback.
            self._rollback(session)
            raise
        finally:
            session.close()

    @staticmethod
    def _rollback(session: Session) -> None:
        try:
            session.rollback()
        except exc.SQLAlchemyError as e:
            logger.error(f"Rollback fallido, la conexión será descartada: {e}", exc_info=True)
