import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import wraps
from typing import Optional, Tuple

from flask import current_app, request
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from .auth import (
    generate_salt,
    hash_password,
    hash_token,
    new_session_token,
    normalize_username,
    verify_password,
)
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    UpstreamError,
    ValidationError,
)
from .models import AppSession, User, utcnow
from .validation import is_encodable, validate_registration

logger = logging.getLogger(__name__)

STORE_NOT_CONFIGURED = 'Database is not configured (set DATABASE_URL).'
BAD_CREDENTIALS = 'Invalid username or password.'


@dataclass(frozen=True)
class SessionUser:
    """Authenticated identity, detached from the database session."""
    id: int
    username: str

    def to_dict(self) -> dict:
        return {'id': self.id, 'username': self.username}


@dataclass(frozen=True)
class SessionContext:
    """Per-request session state handed to route handlers."""
    user: Optional[SessionUser] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def require_user(self) -> SessionUser:
        if self.user is None:
            raise AuthenticationError('Login required.')
        return self.user


class AccountRegistry:
    """
    Credential and session store:
    - Register users with salted scrypt hashes
    - Verify logins and mint session tokens
    - Resolve session cookies to users (read-only, no sliding expiry)
    - Close sessions on logout
    """

    def __init__(self, database=None, session_lifetime_days: int = 30):
        self._db = database
        self.session_lifetime = timedelta(days=session_lifetime_days)

    @property
    def session(self):
        if self._db is None:
            raise ConfigurationError(STORE_NOT_CONFIGURED)
        return self._db.session

    def register(self, username: str, password: str, confirm: str) -> Tuple[SessionUser, str]:
        """Create a user and open their first session."""
        username = validate_registration(username, password, confirm)
        salt = generate_salt()

        user = User(
            username=username,
            password_salt=salt,
            password_hash=hash_password(password, salt)
        )
        session = self.session
        try:
            session.add(user)
            session.commit()
        except IntegrityError:
            session.rollback()
            raise ConflictError('This username is already taken.')
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to register user {username}: {e}")
            raise UpstreamError(str(e))

        logger.info(f"Registered user {username} (id={user.id})")
        identity = SessionUser(id=user.id, username=user.username)
        return identity, self.open_session(identity.id)

    def login(self, username: str, password: str) -> Tuple[SessionUser, str]:
        """Verify credentials; unknown users and wrong passwords fail identically."""
        username = normalize_username(username)
        password = password or ''
        if not username or not password:
            raise ValidationError('Enter a username and password.')
        if not is_encodable(username):
            # Registration never stores such a name
            raise AuthenticationError(BAD_CREDENTIALS)

        try:
            user = self.session.query(User).filter_by(username=username).first()
        except OperationalError as e:
            logger.error(f"Session store unavailable during login: {e}")
            raise ConfigurationError(str(e))

        if user is None or not verify_password(password, user.password_salt, user.password_hash):
            logger.warning(f"Rejected login for {username}")
            raise AuthenticationError(BAD_CREDENTIALS)

        identity = SessionUser(id=user.id, username=user.username)
        return identity, self.open_session(identity.id)

    def open_session(self, user_id: int, now: datetime = None) -> str:
        """Store a new session and return the raw token for the cookie."""
        now = now or utcnow()
        token = new_session_token()
        session = self.session
        try:
            session.add(AppSession(
                token_hash=hash_token(token),
                user_id=user_id,
                expires_at=now + self.session_lifetime
            ))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to open session for user {user_id}: {e}")
            raise UpstreamError('Could not start a session.')
        return token

    def resolve_session(self, token: Optional[str], now: datetime = None) -> Optional[SessionUser]:
        """
        Map a session cookie value to its user.

        Missing tokens, unknown or expired sessions and deleted users all
        return None; callers cannot tell these apart.
        """
        session = self.session
        if not token:
            return None

        now = now or utcnow()
        try:
            row = session.query(AppSession).filter(
                AppSession.token_hash == hash_token(token),
                AppSession.expires_at > now
            ).first()
            if row is None:
                return None
            user = session.get(User, row.user_id)
        except OperationalError as e:
            logger.error(f"Session store unavailable: {e}")
            raise ConfigurationError(str(e))

        if user is None:
            return None
        return SessionUser(id=user.id, username=user.username)

    def close_session(self, token: Optional[str]) -> None:
        """Delete the session for this token; unknown tokens are not an error."""
        if not token:
            return

        session = self.session
        try:
            session.query(AppSession).filter_by(token_hash=hash_token(token)).delete()
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to close session: {e}")
            raise UpstreamError(str(e))


def with_session(view):
    """Resolve the session cookie and pass it to the view as `session_ctx`."""
    @wraps(view)
    def decorated_function(*args, **kwargs):
        token = request.cookies.get(current_app.config['AUTH_COOKIE_NAME'])
        user = current_app.accounts.resolve_session(token)
        kwargs['session_ctx'] = SessionContext(user=user)
        return view(*args, **kwargs)
    return decorated_function
