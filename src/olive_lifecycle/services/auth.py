"""
Authentication: password hashing (bcrypt), JWT tokens and the CLI session file
"""

import json
import logging
import uuid
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional

import bcrypt
import jwt

from ..errors import NotFoundError, UnauthorizedError, ValidationError
from ..models import AuthResponse, LoginRequest, RegisterRequest
from ..user import User
from ..utils.datetime import now_utc
from .fixtures import DEV_PASSWORD
from .store import RecordStore


logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


# ============================================================================
# Password hashing
# ============================================================================

def get_password_hash(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    if not isinstance(password, str):
        raise ValidationError("password must be a string")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


# ============================================================================
# Auth service
# ============================================================================

class AuthService:
    """Issues and resolves bearer tokens for users of a record store.

    Password hashes are held by the service, keyed by user id. Accounts
    created through :meth:`register` are added to the store, which must
    therefore support ``add_user`` (the in-memory store does).
    """

    def __init__(self, store: RecordStore, secret_key: str,
                 token_lifetime_hours: int = 24, rounds: int = 12):
        self.store = store
        self.secret_key = secret_key
        self.token_lifetime = timedelta(hours=token_lifetime_hours)
        self.rounds = rounds
        self._password_hashes: Dict[str, str] = {}

    def set_password(self, user_id: str, password: str) -> None:
        self._password_hashes[user_id] = get_password_hash(password, rounds=self.rounds)

    async def seed_dev_passwords(self, password: str = DEV_PASSWORD) -> int:
        """Give every store user without a password the shared development one."""
        users = await self.store.list_users()
        # One hash shared by every seeded account keeps startup fast
        shared_hash = get_password_hash(password, rounds=self.rounds)
        seeded = 0
        for user in users:
            if user.id not in self._password_hashes:
                self._password_hashes[user.id] = shared_hash
                seeded += 1
        logger.debug(f"Seeded development passwords for {seeded} users")
        return seeded

    async def _find_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        for user in await self.store.list_users():
            if user.email.lower() == wanted:
                return user
        return None

    def create_token(self, user: User) -> AuthResponse:
        expires_at = now_utc() + self.token_lifetime
        payload = {
            "sub": user.id,
            "email": user.email,
            "role": user.role.value,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=ALGORITHM)
        return AuthResponse(
            token=token,
            user_id=user.id,
            email=user.email,
            role=user.role.value,
            expires_at=expires_at,
        )

    async def login(self, request: LoginRequest) -> AuthResponse:
        user = await self._find_by_email(request.email)
        password_hash = self._password_hashes.get(user.id) if user else None
        if user is None or password_hash is None or not verify_password(request.password, password_hash):
            logger.warning(f"Failed login attempt for {request.email}")
            raise UnauthorizedError("Invalid email or password.")
        logger.info(f"User {user.id} logged in")
        return self.create_token(user)

    async def register(self, request: RegisterRequest) -> AuthResponse:
        if await self._find_by_email(request.email) is not None:
            raise ValidationError("User with this email already exists.")

        add_user = getattr(self.store, "add_user", None)
        if add_user is None:
            raise ValidationError("This record store does not accept new registrations.")

        user = User(
            id=f"user{uuid.uuid4().hex[:12]}",
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            role=request.role,
        )
        add_user(user)
        self.set_password(user.id, request.password)
        logger.info(f"User registered: {user.id} ({user.role.value})")
        return self.create_token(user)

    async def resolve_token(self, token: str) -> User:
        """Decode a bearer token and return its user."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Token expired")
        except jwt.InvalidTokenError:
            raise UnauthorizedError("Invalid token")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError("Invalid token payload")
        try:
            return await self.store.get_user(user_id)
        except NotFoundError:
            raise UnauthorizedError("User not found")


# ============================================================================
# CLI session
# ============================================================================

class SessionStore:
    """Persists the logged-in session for the command line."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, session: AuthResponse) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(session.to_payload(), f, indent=2)
        logger.debug(f"Session saved to {self.path}")

    def load(self) -> Optional[AuthResponse]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            session = AuthResponse.model_validate(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None
        if session.expires_at <= now_utc():
            logger.info("Stored session has expired")
            return None
        return session

    def clear(self) -> bool:
        if self.path.exists():
            self.path.unlink()
            return True
        return False
