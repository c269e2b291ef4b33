"""Persistence layer for user data."""

from __future__ import annotations

from sqlalchemy.orm import Session

from campus_notify.domain.entities import User
from campus_notify.infrastructure.models import UserModel
from campus_notify.utils import ensure_app_timezone


class UserRepository:
    """Lookup and creation of the users notifications are addressed to."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_username(self, username: str) -> User | None:
        model = (
            self.session.query(UserModel)
            .filter(UserModel.username == username)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def create(self, user: User) -> User:
        if self.get_by_username(user.username) is not None:
            msg = f"User '{user.username}' already exists"
            raise ValueError(msg)
        model = UserModel(
            username=user.username,
            email=user.email,
            is_active=user.is_active,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            username=model.username,
            email=model.email,
            is_active=model.is_active,
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["UserRepository"]
