"""Persistence layer for user data."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from servicedesk.domain.entities import Role, User
from servicedesk.infrastructure.models import RoleModel, UserModel
from servicedesk.utils import ensure_app_naive_datetime, ensure_app_timezone


class UserRepository:
    """Provide read and create operations for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self._get_model(id=user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        model = self._get_model(email=email)
        return self._to_entity(model) if model else None

    def create(self, user: User) -> User:
        model = UserModel()
        self._apply_entity_to_model(model, user)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        if model.role is None:
            self.session.refresh(model, attribute_names=["role"])
        return self._to_entity(model)

    def record_login(self, user_id: int, when: datetime) -> None:
        model = self._get_model(id=user_id)
        if model is None:
            return
        model.last_login = ensure_app_naive_datetime(when)
        self.session.add(model)
        self.session.commit()

    def list_active_ids(self, *, role_alias: str | None = None) -> list[int]:
        query = (
            self.session.query(UserModel.id)
            .filter(UserModel.deleted.is_(False))
            .filter(UserModel.is_active.is_(True))
        )
        if role_alias is not None:
            query = query.join(RoleModel, UserModel.role_id == RoleModel.id).filter(
                RoleModel.alias.ilike(role_alias)
            )
        return [user_id for (user_id,) in query.order_by(UserModel.id).all()]

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            role=UserRepository._role_to_entity(model.role),
            name=model.name,
            email=model.email,
            password=model.password,
            is_active=model.is_active,
            phone_number=model.phone_number,
            push_token=model.push_token,
            last_login=ensure_app_timezone(model.last_login),
            created_at=ensure_app_timezone(model.created_at),
            deleted=model.deleted,
        )

    def _get_model(self, include_deleted: bool = False, **filters) -> UserModel | None:
        query = self.session.query(UserModel).options(joinedload(UserModel.role))
        if not include_deleted:
            query = query.filter(UserModel.deleted.is_(False))
        return query.filter_by(**filters).first()

    @staticmethod
    def _apply_entity_to_model(model: UserModel, user: User) -> None:
        model.role_id = user.role.id
        model.name = user.name
        model.email = user.email
        model.password = user.password
        model.phone_number = user.phone_number
        model.push_token = user.push_token
        model.is_active = user.is_active
        model.deleted = user.deleted
        if user.created_at is not None:
            model.created_at = ensure_app_naive_datetime(user.created_at)

    @staticmethod
    def _role_to_entity(model_role) -> Role:
        if model_role is None:
            msg = "User role is not set"
            raise ValueError(msg)
        return Role(id=model_role.id, name=model_role.name, alias=model_role.alias)
