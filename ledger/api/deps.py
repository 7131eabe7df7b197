from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger.core.security import decode_token
from ledger.db.database import get_db
from ledger.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def _clean_candidate(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().strip("\"'").strip()
    if not cleaned:
        return None
    # Normalize accidental duplicated prefixes like: "Bearer Bearer <jwt>"
    while cleaned.lower().startswith("bearer "):
        cleaned = cleaned[7:].strip().strip("\"'").strip()
    return cleaned or None


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    raw_token = _clean_candidate(token)
    if not raw_token:
        raw_token = _clean_candidate(request.headers.get("x-access-token"))
    if not raw_token:
        raw_token = _clean_candidate(request.cookies.get("access_token"))
    if not raw_token:
        raise credentials_exception

    try:
        payload = decode_token(raw_token)
    except JWTError as exc:
        raise credentials_exception from exc

    subject = payload.get("sub")
    if subject is None or payload.get("type") != "access":
        raise credentials_exception
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise credentials_exception from exc

    user = db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise credentials_exception
    return user
