"""Persistence helpers for user roles."""

from __future__ import annotations

from sqlalchemy.orm import Session

from servicedesk.domain.entities import Role
from servicedesk.infrastructure.models import RoleModel


class RoleRepository:
    """Look up roles and create the ones that are missing."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_alias(self, alias: str) -> Role | None:
        model = (
            self.session.query(RoleModel).filter(RoleModel.alias.ilike(alias)).first()
        )
        return self._to_entity(model) if model else None

    def get_or_create(self, alias: str, *, name: str | None = None) -> Role:
        existing = self.get_by_alias(alias)
        if existing is not None:
            return existing
        model = RoleModel(alias=alias.lower(), name=name or alias.title())
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: RoleModel) -> Role:
        return Role(id=model.id, name=model.name, alias=model.alias)


__all__ = ["RoleRepository"]
