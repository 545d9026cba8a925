"""Unit and integration tests for the expired token sweep."""

import unittest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from pickpool.core.errors import StoreError, StoreErrorKind
from pickpool.core.utils import utcnow
from pickpool.models import PasswordReset, RefreshToken
from pickpool.services.token_sweep import run_token_sweep
from support import add_user, make_engine, make_session_factory


class TestSweepDisabled(unittest.TestCase):
    """When TOKEN_SWEEP_ENABLED is False, nothing is queried."""

    def test_returns_zero_and_does_not_query(self) -> None:
        settings = MagicMock()
        settings.TOKEN_SWEEP_ENABLED = False
        session = MagicMock()
        counts = run_token_sweep(session, settings)
        self.assertEqual((counts.password_resets, counts.refresh_tokens), (0, 0))
        session.query.assert_not_called()
        session.commit.assert_not_called()


class TestSweepMocked(unittest.TestCase):
    def test_reports_counts_and_commits_once(self) -> None:
        settings = MagicMock()
        settings.TOKEN_SWEEP_ENABLED = True
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.side_effect = [2, 3]
        counts = run_token_sweep(session, settings)
        self.assertEqual(counts.password_resets, 2)
        self.assertEqual(counts.refresh_tokens, 3)
        session.commit.assert_called_once()

    def test_store_failure_rolls_back(self) -> None:
        settings = MagicMock()
        settings.TOKEN_SWEEP_ENABLED = True
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.side_effect = OperationalError(
            "DELETE", {}, Exception("connection lost")
        )
        with self.assertRaises(StoreError):
            run_token_sweep(session, settings)
        session.rollback.assert_called_once()
        session.commit.assert_not_called()


class TestSweepIntegration(unittest.TestCase):
    """Against a real schema: only rows past expiry go."""

    def test_sweep_against_real_db(self) -> None:
        engine = make_engine()
        db = make_session_factory(engine)()
        try:
            user_id = add_user(db, "alice", "alice@x.com")
            now = utcnow()
            db.add_all(
                [
                    RefreshToken(user_id=user_id, token="r-old", expires_at=now - timedelta(days=1)),
                    RefreshToken(user_id=user_id, token="r-new", expires_at=now + timedelta(days=1)),
                    PasswordReset(user_id=user_id, token="p-old", expires_at=now - timedelta(hours=2)),
                ]
            )
            db.commit()
            settings = MagicMock()
            settings.TOKEN_SWEEP_ENABLED = True

            counts = run_token_sweep(db, settings)
            self.assertEqual((counts.password_resets, counts.refresh_tokens), (1, 1))
            self.assertEqual([t.token for t in db.query(RefreshToken).all()], ["r-new"])
            self.assertEqual(db.query(PasswordReset).count(), 0)

            again = run_token_sweep(db, settings)
            self.assertEqual((again.password_resets, again.refresh_tokens), (0, 0))
        finally:
            db.close()
            engine.dispose()


class TestSweepCli(unittest.TestCase):
    def test_exit_code_reflects_outcome(self) -> None:
        from pickpool import sweep

        with patch.object(sweep, "session_scope") as scope, patch.object(
            sweep, "run_token_sweep"
        ) as run:
            run.return_value = MagicMock(password_resets=0, refresh_tokens=4)
            self.assertEqual(sweep.main(), 0)
            scope.return_value.__exit__.assert_called_once()

            run.side_effect = StoreError(StoreErrorKind.UNAVAILABLE, "sweep_expired")
            self.assertEqual(sweep.main(), 1)


if __name__ == "__main__":
    unittest.main()
