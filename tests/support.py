"""Shared helpers for tests: in-memory SQLite database, fast bcrypt, fixed clocks."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import hash_password
from app.models import Base, Client, Role, User
from app.schemas.auth import CurrentUser
from app.services.token_service import TokenConfig, TokenService

# bcrypt's minimum cost keeps hashing-heavy tests fast.
TEST_ROUNDS = 4
DEFAULT_PASSWORD = "Passw0rd"


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def make_token_service(clock=None, max_refresh_tokens: int = 5) -> TokenService:
    return TokenService(
        TokenConfig(
            access_secret="test-access-secret",
            refresh_secret="test-refresh-secret",
            max_refresh_tokens=max_refresh_tokens,
            token_hash_rounds=TEST_ROUNDS,
        ),
        clock=clock,
    )


class SteppingClock:
    """Clock that moves forward by `step` on every call, so created_at values are ordered."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime.now(timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


def add_user(
    session: Session,
    email: str,
    role: Role = Role.PROJECT_MEMBER,
    password: str = DEFAULT_PASSWORD,
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password, rounds=TEST_ROUNDS),
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    return user


def add_client(session: Session, name: str = "Acme", is_active: bool = True) -> Client:
    client = Client(
        name=name,
        contact_person="Jane Doe",
        contact_email="jane@acme.com",
        is_active=is_active,
    )
    session.add(client)
    session.commit()
    return client


def principal(user: User) -> CurrentUser:
    return CurrentUser.model_validate(user)
