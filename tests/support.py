"""Shared helpers for tests: in-memory database, settings and fakes."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pickpool.core.config import Settings
from pickpool.models import Base

TEST_SECRET = "unit-test-signing-secret"


def make_engine():
    """Fresh in-memory SQLite with the real schema and foreign keys enforced."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def make_settings(**overrides) -> Settings:
    values = {
        "JWT_SECRET": TEST_SECRET,
        "APP_ENV": "dev",
        "SMTP_HOST": "smtp.test.local",
        "SMTP_USER": "mailer",
        "ADMIN_EMAIL": "admin@pool.test",
        "CLIENT_URL": "https://pool.test",
        "BOOTSTRAP_ADMIN_ON_STARTUP": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class RecordingMailer:
    """MailDispatcher that keeps what it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def dispatch(self, to: str, subject: str, html_body: str) -> None:
        self.sent.append((to, subject, html_body))


class FailingMailer:
    def dispatch(self, to: str, subject: str, html_body: str) -> None:
        raise RuntimeError("mail transport down")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def add_user(
    db: Session,
    username: str,
    email: str,
    password_hash: str = "not-a-real-hash",
    role: str = "user",
    status: str = "approved",
) -> int:
    from pickpool.models import User

    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role,
        status=status,
    )
    db.add(user)
    db.commit()
    return user.id
