"""Unit tests for the authorization gate: credential extraction, resolution and role checks."""

import unittest
from datetime import UTC, datetime, timedelta

from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, sessionmaker

from resonansi.api.v1.auth import extract_credential, require_role
from resonansi.core.config import Settings
from resonansi.core.database import create_db_engine
from resonansi.core.errors import ForbiddenError, TokenExpiredError, TokenInvalidError
from resonansi.models import Base, User, UserSession
from resonansi.schemas.auth import AuthenticatedContext
from resonansi.services.sessions import (
    issue_credential,
    resolve_credential,
    revoke_credential,
)


def _session() -> Session:
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)()


def _settings(**overrides: object) -> Settings:
    values = {"DATABASE_URL": "sqlite://", "JWT_SECRET": "unit-test-secret"}
    values.update(overrides)
    return Settings(**values)


def _user(db: Session, username: str = "alice", role: str = "user") -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=None,
        profile_picture="",
        role=role,
        auth_provider="local",
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestExtractCredential(unittest.TestCase):
    """Header first, then cookie."""

    def test_header_wins_over_cookie(self) -> None:
        self.assertEqual(extract_credential(_bearer("from-header"), "from-cookie"), "from-header")

    def test_cookie_used_when_no_header(self) -> None:
        self.assertEqual(extract_credential(None, "from-cookie"), "from-cookie")

    def test_cookie_with_bearer_prefix_is_stripped(self) -> None:
        self.assertEqual(extract_credential(None, "Bearer abc"), "abc")

    def test_nothing_present(self) -> None:
        self.assertIsNone(extract_credential(None, None))
        self.assertIsNone(extract_credential(None, "   "))


class TestRequireRole(unittest.TestCase):
    def test_exact_role_passes(self) -> None:
        ctx = AuthenticatedContext(user_id=1, role="admin")
        self.assertIs(require_role("admin")(ctx), ctx)

    def test_other_role_is_forbidden(self) -> None:
        with self.assertRaises(ForbiddenError) as cm:
            require_role("admin")(AuthenticatedContext(user_id=1, role="user"))
        self.assertEqual(cm.exception.status_code, 403)

    def test_role_comparison_is_case_sensitive(self) -> None:
        with self.assertRaises(ForbiddenError):
            require_role("admin")(AuthenticatedContext(user_id=1, role="Admin"))


class TestOwnerOrAdmin(unittest.TestCase):
    def test_owner_and_admin_allowed(self) -> None:
        self.assertTrue(AuthenticatedContext(user_id=3, role="user").can_act_on(3))
        self.assertTrue(AuthenticatedContext(user_id=1, role="admin").can_act_on(3))

    def test_other_user_denied(self) -> None:
        self.assertFalse(AuthenticatedContext(user_id=2, role="user").can_act_on(3))
        self.assertFalse(AuthenticatedContext(user_id=2, role="user").can_act_on(None))


class TestTokenStrategy(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()
        self.settings = _settings(SESSION_STRATEGY="token")

    def tearDown(self) -> None:
        self.db.close()

    def test_issued_token_resolves_to_identity(self) -> None:
        user = _user(self.db, role="admin")
        token = issue_credential(self.db, user, self.settings)
        ctx = resolve_credential(self.db, token, self.settings)
        self.assertEqual(ctx.user_id, user.id)
        self.assertEqual(ctx.role, "admin")
        self.assertIsNotNone(ctx.expires_at)

    def test_no_session_rows_written(self) -> None:
        issue_credential(self.db, _user(self.db), self.settings)
        self.assertEqual(self.db.query(UserSession).count(), 0)

    def test_garbage_token_is_invalid(self) -> None:
        with self.assertRaises(TokenInvalidError):
            resolve_credential(self.db, "garbage", self.settings)

    def test_revoke_is_a_no_op(self) -> None:
        token = issue_credential(self.db, _user(self.db), self.settings)
        self.assertFalse(revoke_credential(self.db, token, self.settings))


class TestSessionStrategy(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()
        self.settings = _settings(SESSION_STRATEGY="session")

    def tearDown(self) -> None:
        self.db.close()

    def test_session_id_resolves_with_current_role(self) -> None:
        user = _user(self.db)
        session_id = issue_credential(self.db, user, self.settings)
        self.assertEqual(self.db.query(UserSession).count(), 1)
        user.role = "admin"
        self.db.commit()
        ctx = resolve_credential(self.db, session_id, self.settings)
        self.assertEqual(ctx.user_id, user.id)
        self.assertEqual(ctx.role, "admin")

    def test_unknown_session_is_invalid(self) -> None:
        with self.assertRaises(TokenInvalidError):
            resolve_credential(self.db, "no-such-session", self.settings)

    def test_expired_session_is_expired(self) -> None:
        user = _user(self.db)
        self.db.add(
            UserSession(
                id="stale",
                user_id=user.id,
                expires_at=datetime.now(UTC) - timedelta(minutes=1),
                data={},
            )
        )
        self.db.commit()
        with self.assertRaises(TokenExpiredError):
            resolve_credential(self.db, "stale", self.settings)

    def test_inactive_user_session_is_invalid(self) -> None:
        user = _user(self.db)
        session_id = issue_credential(self.db, user, self.settings)
        user.is_active = False
        self.db.commit()
        with self.assertRaises(TokenInvalidError):
            resolve_credential(self.db, session_id, self.settings)

    def test_revoke_deletes_record_and_is_idempotent(self) -> None:
        session_id = issue_credential(self.db, _user(self.db), self.settings)
        self.assertTrue(revoke_credential(self.db, session_id, self.settings))
        self.assertFalse(revoke_credential(self.db, session_id, self.settings))
        with self.assertRaises(TokenInvalidError):
            resolve_credential(self.db, session_id, self.settings)


if __name__ == "__main__":
    unittest.main()
