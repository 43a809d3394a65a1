from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from whateat_recipes.app.core.config import get_settings
from whateat_recipes.app.db.session import get_db
from whateat_recipes.app.schemas.auth import CurrentUser
from whateat_recipes.app.services.llm_client import StructuredLLMClient

security = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> CurrentUser:
    if credentials is None:
        raise _unauthorized()
    settings = get_settings()
    try:
        payload = jwt.decode(credentials.credentials, settings.auth_jwt_secret, algorithms=[settings.auth_algorithm])
    except JWTError:
        raise _unauthorized()
    sub = payload.get("sub")
    if not sub:
        raise _unauthorized()
    return CurrentUser(id=str(sub), email=payload.get("email"))


def get_db_session(db: Session = Depends(get_db)) -> Session:
    return db


def get_llm_client(request: Request) -> Optional[StructuredLLMClient]:
    return getattr(request.app.state, "llm_client", None)
