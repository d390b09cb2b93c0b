"""Casos de uso: registro, login y gestión del perfil de usuario."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .db import TransactionCoordinator
from .errors import InvalidCredentials, UserAlreadyExists, UserNotFound
from .models import User
from .repository import UserRepository
from .schemas import UserResponse
from .utils import PasswordHasher

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def to_summary(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


def _ensure_email_free(repo: UserRepository, email: str, tx: Session) -> None:
    if repo.get_by_email(email, tx=tx) is not None:
        raise UserAlreadyExists()


def _ensure_username_free(repo: UserRepository, username: str, tx: Session) -> None:
    if repo.get_by_username(username, tx=tx) is not None:
        raise UserAlreadyExists()


class AuthUseCase:
    """Registration and login. Token issuance stays at the HTTP boundary."""

    def __init__(self, user_repo: UserRepository, hasher: PasswordHasher, transactions: TransactionCoordinator):
        self._user_repo = user_repo
        self._hasher = hasher
        self._transactions = transactions

    def register(self, username: str, email: str, password: str) -> UserResponse:
        """
        Registers a new user ATOMICALLY: both uniqueness checks and the insert
        run in one transaction. The UNIQUE constraints remain the final guard;
        a violation at insert or commit also surfaces as UserAlreadyExists.
        """

        def unit_of_work(tx: Session) -> UserResponse:
            _ensure_email_free(self._user_repo, email, tx)
            _ensure_username_free(self._user_repo, username, tx)

            new_user = User(
                username=username,
                email=email,
                password_hash=self._hasher.hash(password),
            )
            created = self._user_repo.create(new_user, tx=tx)
            return to_summary(created)

        summary = self._transactions.run_in_transaction(unit_of_work)
        logger.info(f"User created with ID: {summary.id} for email: {email}")
        return summary

    def login(self, email: str, password: str) -> UserResponse:
        """Unknown email and wrong password fail with the same InvalidCredentials."""
        user = self._user_repo.get_by_email(email)
        if user is None or not self._hasher.verify(password, user.password_hash):
            raise InvalidCredentials()
        return to_summary(user)


class UserUseCase:
    """Perfil del usuario: consulta, actualización, borrado, listado y cambio de contraseña."""

    def __init__(self, user_repo: UserRepository, hasher: PasswordHasher, transactions: TransactionCoordinator):
        self._user_repo = user_repo
        self._hasher = hasher
        self._transactions = transactions

    def get_user(self, user_id: int) -> UserResponse:
        user = self._user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return to_summary(user)

    def update_user(self, user_id: int, username: Optional[str] = None, email: Optional[str] = None) -> UserResponse:
        def unit_of_work(tx: Session) -> UserResponse:
            user = self._user_repo.get_by_id(user_id, tx=tx)
            if user is None:
                raise UserNotFound()

            if email and email != user.email:
                _ensure_email_free(self._user_repo, email, tx)
                user.email = email
            if username and username != user.username:
                _ensure_username_free(self._user_repo, username, tx)
                user.username = username

            return to_summary(self._user_repo.update(user, tx=tx))

        return self._transactions.run_in_transaction(unit_of_work)

    def delete_user(self, user_id: int) -> None:
        if not self._user_repo.delete(user_id):
            raise UserNotFound()
        logger.info(f"Usuario {user_id} eliminado.")

    def list_users(self, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> List[UserResponse]:
        page = max(page, 1)
        if limit < 1:
            limit = DEFAULT_PAGE_LIMIT
        limit = min(limit, MAX_PAGE_LIMIT)

        users = self._user_repo.list(limit=limit, offset=(page - 1) * limit)
        return [to_summary(user) for user in users]

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        def unit_of_work(tx: Session) -> None:
            user = self._user_repo.get_by_id(user_id, tx=tx)
            if user is None:
                raise UserNotFound()
            if not self._hasher.verify(old_password, user.password_hash):
                raise InvalidCredentials("Old password is incorrect")

            user.password_hash = self._hasher.hash(new_password)
            self._user_repo.update(user, tx=tx)

        self._transactions.run_in_transaction(unit_of_work)
        logger.info(f"Contraseña actualizada para el usuario {user_id}.")
