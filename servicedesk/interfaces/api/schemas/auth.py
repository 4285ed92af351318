"""Authentication related schemas."""

from pydantic import BaseModel, EmailStr, Field

from servicedesk.domain.entities import User


class Token(BaseModel):
    access_token: str
    token_type: str
    role: str


class CurrentUserRead(BaseModel):
    """Profile of the authenticated user, including the contact data channels use."""

    id: int
    name: str
    email: EmailStr | None = None
    role: str
    phone_number: str | None = Field(default=None, description="E.164 number used for SMS")
    has_push_token: bool = False

    @classmethod
    def from_entity(cls, user: User) -> "CurrentUserRead":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.alias,
            phone_number=user.phone_number,
            has_push_token=bool(user.push_token),
        )
