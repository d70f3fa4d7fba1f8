from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..config import SECRET_KEY, SESSION_EXPIRE_MINUTES
from ..database import get_db
from ..models import User
from ..schemas.user import TokenData, User as UserSchema

router = APIRouter()

ALGORITHM = "HS256"
COOKIE_NAME = "token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token."""
    to_encode = data.copy()
    expire = utcnow() + (
        expires_delta or timedelta(minutes=SESSION_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get(COOKIE_NAME)


def _decode_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if not user_id:
            return None
        return TokenData(user_id=user_id)
    except JWTError:
        return None


def _user_from_request(request: Request, db: Session) -> Optional[User]:
    token = _get_token_from_request(request)
    if not token:
        return None
    token_data = _decode_token(token)
    if not token_data or not token_data.user_id:
        return None
    return db.query(User).filter(User.id == token_data.user_id).first()


async def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Signed-in user, or None for anonymous requests."""
    return _user_from_request(request, db)


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the session token."""
    token = _get_token_from_request(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = _user_from_request(request, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


@router.get("/session")
async def get_session(request: Request, db: Session = Depends(get_db)):
    """Describe the current session, if any."""
    token = _get_token_from_request(request)
    user = _user_from_request(request, db)
    if not user:
        return {"session": None, "user": None}

    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    return {
        "session": {
            "expiresAt": datetime.fromtimestamp(payload.get("exp"), tz=timezone.utc).isoformat(),
            "userId": str(user.id),
        },
        "user": UserSchema.model_validate(user).model_dump(mode="json"),
    }


@router.get("/me", response_model=UserSchema)
def read_users_me(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user


@router.post("/signout")
async def signout(response: Response):
    """Sign out and clear session cookie."""
    response.delete_cookie(key=COOKIE_NAME)
    return {"success": True}
