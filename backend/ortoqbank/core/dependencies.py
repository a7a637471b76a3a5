"""FastAPI dependencies: current user, admin guard and data context."""

from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ortoqbank.core.config import settings
from ortoqbank.core.logging import get_logger
from ortoqbank.core.security import TokenError, verify_identity_token
from ortoqbank.db.context import DataContext
from ortoqbank.db.session import get_db
from ortoqbank.models.user import User, UserRole

logger = get_logger(__name__)

PROFILE_CLAIMS = {
    "email": "email",
    "given_name": "first_name",
    "family_name": "last_name",
    "picture": "image_url",
}


def _role_from_claims(claims: dict[str, Any]) -> str:
    role = claims.get("role")
    metadata = claims.get("public_metadata")
    if role is None and isinstance(metadata, dict):
        role = metadata.get("role")
    return UserRole.ADMIN.value if role == settings.AUTH_ADMIN_ROLE else UserRole.USER.value


def upsert_user_from_claims(db: Session, claims: dict[str, Any]) -> User:
    """Create the user on first sight and keep profile fields and role in sync."""
    user = db.get(User, claims["sub"])
    values = {column: claims[claim] for claim, column in PROFILE_CLAIMS.items() if claim in claims}
    values["role"] = _role_from_claims(claims)

    if user is None:
        user = User(id=claims["sub"], **values)
        db.add(user)
        db.commit()
        logger.info("user_provisioned", extra={"user_id": user.id})
        return user

    changed = {key: value for key, value in values.items() if getattr(user, key) != value}
    if changed:
        for key, value in changed.items():
            setattr(user, key, value)
        db.commit()
    return user


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    db: Session = Depends(get_db),
) -> User:
    """Dependency to get the current authenticated user from the bearer token."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
        )

    try:
        claims = verify_identity_token(token.strip())
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or expired token: {e}",
        ) from e

    return upsert_user_from_claims(db, claims)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin role required",
        )
    return current_user


def get_data_context(request: Request, db: Session = Depends(get_db)) -> DataContext:
    """Request session plus the aggregate registry and triggers from app state."""
    return DataContext(
        db=db,
        aggregates=request.app.state.aggregates,
        triggers=request.app.state.triggers,
    )


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
Context = Annotated[DataContext, Depends(get_data_context)]
DB = Annotated[Session, Depends(get_db)]
