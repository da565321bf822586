import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

import config
from database import ACCOUNT_COLLECTION, get_db
from errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

OWNER_ROLE = "super_admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/admin/login")


# ----------------------- Utility Functions -----------------------

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


# ----------------------- Request context -----------------------

class AuthContext(BaseModel):
    """The authenticated account a request acts as, minus its password hash."""

    account: Dict[str, Any]

    @property
    def account_id(self) -> str:
        return str(self.account["_id"])

    @property
    def role(self) -> str:
        return self.account.get("role", "admin")

    @property
    def is_owner(self) -> bool:
        return self.role == OWNER_ROLE


# ----------------------- Auth Helpers -----------------------

def get_current_account(token: str = Depends(oauth2_scheme), db=Depends(get_db)) -> AuthContext:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid token.")

    account_id = payload.get("sub")
    if not account_id or not ObjectId.is_valid(account_id):
        raise Unauthorized("Invalid token.")

    account = db[ACCOUNT_COLLECTION].find_one({"_id": ObjectId(account_id)}, {"password_hash": 0})
    if not account or not account.get("is_active", True):
        raise Unauthorized("Invalid token or account is inactive.")
    return AuthContext(account=account)


def require_owner(current: AuthContext = Depends(get_current_account)) -> AuthContext:
    if not current.is_owner:
        logger.warning("Account %s denied owner-only access", current.account.get("email"))
        raise Forbidden("Access denied. Owner privileges required.")
    return current
