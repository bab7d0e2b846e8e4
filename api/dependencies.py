"""API Dependencies - staff authentication"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import User, UserInDB
from infrastructure.security import decode_access_token, get_password_hash


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Staff accounts of the demo hosts; plain passwords are hashed on first use
staff_users_db = {
    "host01": {
        "username": "host01",
        "host_id": "host-01",
        "full_name": "Front Desk Host 01",
        "email": "desk@host01.example.com",
        "plain_password": "host123",
        "disabled": False,
        "user_id": "123e4567-e89b-12d3-a456-426614174000"
    },
    "host02": {
        "username": "host02",
        "host_id": "host-02",
        "full_name": "Front Desk Host 02",
        "email": "desk@host02.example.com",
        "plain_password": "host456",
        "disabled": False,
        "user_id": "123e4567-e89b-12d3-a456-426614174001"
    },
    "retired": {
        "username": "retired",
        "host_id": "host-01",
        "plain_password": "retired123",
        "disabled": True,
        "user_id": "123e4567-e89b-12d3-a456-426614174002"
    }
}


@lru_cache(maxsize=None)
def _hashed_password(username: str) -> str:
    # Hashed once per account, on first login
    return get_password_hash(staff_users_db[username]["plain_password"])


def get_user(db, username: str) -> Optional[UserInDB]:
    record = db.get(username)
    if record is None:
        return None
    fields = {key: value for key, value in record.items() if key != "plain_password"}
    return UserInDB(**fields, hashed_password=_hashed_password(username))


async def get_current_user(token: str = Depends(oauth2_scheme)) -> UserInDB:
    """Resolve the staff member behind a bearer token"""
    try:
        username = decode_access_token(token).get("sub")
    except JWTError:
        username = None

    user = get_user(staff_users_db, username) if username else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user
