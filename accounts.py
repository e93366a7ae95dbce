"""
Accounts: registration, password login and bearer tokens.

CredentialStore owns the "signin" collection. SessionIssuer turns a user id
into a signed JWT and back.
"""

from datetime import timedelta
from typing import Callable, Optional, Protocol

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.errors import DuplicateKeyError

from config import Settings
from database import Database, USERS, store_errors, to_object_id, utcnow
from errors import DuplicateEmail, InvalidToken, MissingField, NotFoundError, UnknownEmail, WrongPassword
from schemas import User

logger = structlog.get_logger()

ALGORITHM = "HS256"


class RegistrationNotifier(Protocol):
    def notify_registered(self, username: str, email: str): ...


def make_password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


class CredentialStore:
    def __init__(self, db: Database, pwd_context: CryptContext, notifier: Optional[RegistrationNotifier] = None):
        self.db = db
        self.pwd_context = pwd_context
        self.notifier = notifier

    @property
    def users(self):
        return self.db[USERS]

    def register(
        self,
        username: str,
        email: str,
        password: str,
        schedule: Optional[Callable[..., None]] = None,
    ) -> dict:
        """
        Create the user and hand the welcome mail to the notifier.

        schedule, when given, defers the mail (e.g. BackgroundTasks.add_task);
        otherwise it is sent inline. Either way a failed mail is only logged.
        """
        missing = [name for name, value in (("username", username), ("email", email), ("password", password)) if not value]
        if missing:
            raise MissingField(*missing)

        with store_errors("find user"):
            existing = self.users.find_one({"email": email})
        if existing:
            raise DuplicateEmail()

        user = User(username=username, email=email, password=self.pwd_context.hash(password))
        try:
            doc = self.db.create_document(USERS, user)
        except DuplicateKeyError:
            # Lost the race against a concurrent signup for the same email
            raise DuplicateEmail()

        logger.info("user registered", user_id=str(doc["_id"]))
        if schedule is not None:
            schedule(self._notify, username, email)
        else:
            self._notify(username, email)
        return doc

    def _notify(self, username: str, email: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify_registered(username, email)
        except Exception as exc:
            logger.error("welcome email dispatch failed", to=email, error=str(exc))

    def authenticate(self, email: str, password: str) -> dict:
        with store_errors("find user"):
            user = self.users.find_one({"email": email}) if email else None
        if not user:
            # Spend the same hashing time as a real comparison
            self.pwd_context.dummy_verify()
            raise UnknownEmail()

        # An empty password still goes through bcrypt so every failure costs the same
        if not self.pwd_context.verify(password or "", user["password"]):
            raise WrongPassword()
        return user

    def get(self, user_id: str) -> dict:
        oid = to_object_id(user_id)
        with store_errors("find user"):
            user = self.users.find_one({"_id": oid})
        if not user:
            raise NotFoundError("User not found")
        return user


class SessionIssuer:
    """
    Signs tokens carrying the user id.

    Tokens never expire unless token_ttl is given.
    """

    def __init__(self, secret_key: str, token_ttl: Optional[timedelta] = None):
        self.secret_key = secret_key
        self.token_ttl = token_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionIssuer":
        ttl = timedelta(minutes=settings.token_ttl_minutes) if settings.token_ttl_minutes else None
        return cls(settings.secret_key, ttl)

    def issue(self, user_id) -> str:
        claims = {"id": str(user_id)}
        if self.token_ttl is not None:
            claims["exp"] = utcnow() + self.token_ttl
        return jwt.encode(claims, self.secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except JWTError:
            raise InvalidToken()
        user_id = payload.get("id")
        if not user_id:
            raise InvalidToken()
        return user_id
