import logging

import bcrypt
import jwt
import aiosqlite
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, field_validator
from microlearn.db.database import get_db
from microlearn.db.users import create_user, get_user, get_user_by_email
from microlearn.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

JWT_SECRET = settings.jwt_secret
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 72

# Password policy
MIN_PASSWORD_LENGTH = 8


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def create_token(user_id: int, email: str, role: str = "learner") -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRY_HOURS),
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_user(request: Request, db: aiosqlite.Connection) -> dict:
    """Extract and validate the current user from the JWT token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Empty token")

    payload = decode_token(token)
    user = await get_user(db, int(payload["sub"]))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return {
        "id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "role": user["role"] or "learner",
        "interests": user["interests"],
    }


# ── Convenience helpers for route-level auth ────────────────────────

def require_role(*allowed_roles: str):
    """Return a dependency that checks the user has one of the allowed roles.

    Usage in a route:
        user = await require_role("admin")(request, db)
    """
    async def _check(request: Request, db: aiosqlite.Connection) -> dict:
        user = await get_current_user(request, db)
        if user["role"] not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. Required role: {', '.join(allowed_roles)}",
            )
        return user
    return _check


async def require_user_owner(request: Request, user_id: int, db: aiosqlite.Connection) -> dict:
    """Get current user and verify they may act on ``user_id``.

    Learners only reach their own data. Admins can reach anyone.
    """
    user = await get_current_user(request, db)
    if user["role"] != "admin" and user["id"] != user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return user


async def resolve_target_user(request: Request, user_id: int | None, db: aiosqlite.Connection) -> int:
    """User a request body applies to: the named ``userId`` or else the caller."""
    if user_id is None:
        user = await get_current_user(request, db)
        return user["id"]
    await require_user_owner(request, user_id, db)
    return user_id


@router.post("/register")
async def register(body: RegisterRequest, db=Depends(get_db)):
    """Public registration endpoint.

    The role is never taken from the request: addresses listed in
    ADMIN_EMAILS become admins, everyone else is a learner.
    """
    if await get_user_by_email(db, body.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    role = "admin" if body.email in settings.admin_email_set else "learner"
    user_id = await create_user(db, body.name, body.email, hash_password(body.password), role)
    logger.info("Registered user %s (%s)", user_id, role)

    return {
        "success": True,
        "token": create_token(user_id, body.email, role),
        "userId": user_id,
        "name": body.name,
        "email": body.email,
        "role": role,
    }


@router.post("/login")
async def login(body: LoginRequest, db=Depends(get_db)):
    user = await get_user_by_email(db, body.email.strip().lower())
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user["password_hash"]:
        raise HTTPException(status_code=401, detail="Account has no password. Please register or contact admin.")

    if not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    role = user["role"] or "learner"
    return {
        "success": True,
        "token": create_token(user["id"], user["email"], role),
        "userId": user["id"],
        "name": user["name"],
        "email": user["email"],
        "role": role,
        "hasInterests": bool(user["interests"]),
    }


@router.get("/me")
async def get_me(request: Request, db=Depends(get_db)):
    user = await get_current_user(request, db)
    return user
