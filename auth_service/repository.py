"""Acceso a la tabla 'users'."""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import exc, select
from sqlalchemy.orm import Session, sessionmaker

from .db import translate_storage_error
from .models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """
    CRUD and unique-field lookups over persisted users.

    Every method accepts an optional `tx` handle. When given, the call runs on
    that session and leaves commit/rollback to its owner (the
    TransactionCoordinator). Otherwise the call runs in its own short
    transaction. Lookups return None when no row matches.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, tx: Optional[Session]) -> Iterator[Session]:
        try:
            if tx is not None:
                yield tx
            else:
                with self._session_factory() as session, session.begin():
                    yield session
        except exc.SQLAlchemyError as e:
            error = translate_storage_error(e)
            if not error.expected:
                logger.error(f"Error de base de datos en el repositorio de usuarios: {e}")
            raise error from e

    def create(self, user: User, tx: Optional[Session] = None) -> User:
        """Inserts the user and fills in the id and timestamps assigned by the database."""
        with self._session(tx) as session:
            session.add(user)
            session.flush()
            session.refresh(user)
        return user

    def get_by_id(self, user_id: int, tx: Optional[Session] = None) -> Optional[User]:
        with self._session(tx) as session:
            return session.get(User, user_id)

    def get_by_email(self, email: str, tx: Optional[Session] = None) -> Optional[User]:
        with self._session(tx) as session:
            return session.scalars(select(User).where(User.email == email)).first()

    def get_by_username(self, username: str, tx: Optional[Session] = None) -> Optional[User]:
        with self._session(tx) as session:
            return session.scalars(select(User).where(User.username == username)).first()

    def list(self, limit: int, offset: int, tx: Optional[Session] = None) -> List[User]:
        with self._session(tx) as session:
            return list(session.scalars(select(User).order_by(User.id).limit(limit).offset(offset)))

    def update(self, user: User, tx: Optional[Session] = None) -> User:
        """Persists the user's current field values; updated_at is refreshed by the database."""
        with self._session(tx) as session:
            user = session.merge(user)
            session.flush()
            session.refresh(user)
        return user

    def delete(self, user_id: int, tx: Optional[Session] = None) -> bool:
        """Hard delete. Returns False if there was no such user."""
        with self._session(tx) as session:
            user = session.get(User, user_id)
            if user is None:
                return False
            session.delete(user)
            session.flush()
        return True
