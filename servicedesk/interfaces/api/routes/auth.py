"""Token and profile endpoints for the API and the notifications websocket."""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from servicedesk.application.use_cases.users import AuthenticationStatus, authenticate_user
from servicedesk.config import get_settings
from servicedesk.domain.entities import User
from servicedesk.infrastructure.database import get_db
from servicedesk.infrastructure.security import create_access_token
from servicedesk.interfaces.api.dependencies import get_current_active_user, password_signature
from servicedesk.interfaces.api.schemas import CurrentUserRead, Token

router = APIRouter(prefix="/auth", tags=["auth"])

_FAILURES = {
    AuthenticationStatus.INVALID_CREDENTIALS: (
        status.HTTP_401_UNAUTHORIZED,
        "Incorrect email or password",
    ),
    AuthenticationStatus.INACTIVE: (status.HTTP_403_FORBIDDEN, "Inactive user"),
}


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> Token:
    """Exchange email and password for a bearer token.

    The token also carries a signature of the password hash and active flag,
    so changing either one revokes tokens issued before the change.
    """

    result = authenticate_user(db, form_data.username, form_data.password)
    if not result.succeeded:
        status_code, detail = _FAILURES[result.status]
        raise HTTPException(
            status_code=status_code, detail=detail, headers={"WWW-Authenticate": "Bearer"}
        )

    user = result.user
    token = create_access_token(
        data={"sub": user.email, "role": user.role.alias, "pwd_sig": password_signature(user)},
        expires_delta=timedelta(minutes=get_settings().access_token_expire_minutes),
    )
    return Token(access_token=token, token_type="bearer", role=user.role.alias)


@router.get("/me", response_model=CurrentUserRead)
def read_current_user(current_user: User = Depends(get_current_active_user)) -> CurrentUserRead:
    return CurrentUserRead.from_entity(current_user)
