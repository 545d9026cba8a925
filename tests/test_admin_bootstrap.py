"""Tests for first-run admin provisioning."""

import unittest
from unittest.mock import MagicMock

from pickpool.core.security import verify_password
from pickpool.models import User
from pickpool.services.admin_bootstrap import (
    AdminCredentials,
    admin_credentials_from_env,
    prompt_admin_credentials,
    setup_admin,
)
from support import add_user, make_engine, make_session_factory, make_settings

ENV_ADMIN = {
    "ADMIN_USERNAME": "root_admin",
    "ADMIN_EMAIL": "Root@Pool.test",
    "ADMIN_PASSWORD": "Adm1nPassword",
}


class TestCredentialsFromEnv(unittest.TestCase):
    def test_all_three_required(self) -> None:
        self.assertIsNone(admin_credentials_from_env(make_settings()))
        partial = make_settings(ADMIN_USERNAME="root_admin", ADMIN_PASSWORD="Adm1nPassword")
        self.assertIsNone(admin_credentials_from_env(partial))

    def test_normalizes_email(self) -> None:
        creds = admin_credentials_from_env(make_settings(**ENV_ADMIN))
        self.assertEqual(creds.username, "root_admin")
        self.assertEqual(creds.email, "root@pool.test")
        self.assertNotIn("Adm1nPassword", repr(creds))

    def test_weak_password_rejected(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            admin_credentials_from_env(make_settings(**{**ENV_ADMIN, "ADMIN_PASSWORD": "weak"}))
        self.assertIn("at least 8 characters", str(ctx.exception))


class TestPrompt(unittest.TestCase):
    def test_reads_answers(self) -> None:
        answers = iter(["operator", "op@pool.test"])
        creds = prompt_admin_credentials(
            input_fn=lambda _prompt: next(answers),
            password_fn=lambda _prompt: "Adm1nPassword",
        )
        self.assertEqual(creds, AdminCredentials("operator", "op@pool.test", "Adm1nPassword"))

    def test_mismatched_confirmation(self) -> None:
        passwords = iter(["Adm1nPassword", "Adm1nPasswordX"])
        with self.assertRaises(ValueError) as ctx:
            prompt_admin_credentials(
                input_fn=lambda _prompt: "operator",
                password_fn=lambda _prompt: next(passwords),
            )
        self.assertEqual(str(ctx.exception), "Passwords do not match")


class TestSetupAdmin(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        self.db = make_session_factory(self.engine)()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _admins(self) -> list[User]:
        return self.db.query(User).filter(User.role == "admin").all()

    def test_existing_admin_is_left_alone(self) -> None:
        add_user(self.db, "boss", "boss@pool.test", role="admin")
        prompt = MagicMock()
        result = setup_admin(self.db, make_settings(**ENV_ADMIN), interactive=True, prompt=prompt)
        self.assertIsNone(result)
        prompt.assert_not_called()
        self.assertEqual(len(self._admins()), 1)

    def test_creates_approved_admin_from_env(self) -> None:
        user_id = setup_admin(self.db, make_settings(**ENV_ADMIN), interactive=False)
        admin = self.db.get(User, user_id)
        self.assertEqual(admin.role, "admin")
        self.assertEqual(admin.status, "approved")
        self.assertEqual(admin.email, "root@pool.test")
        self.assertTrue(admin.password_hash.startswith("$2b$12$"))
        self.assertTrue(verify_password("Adm1nPassword", admin.password_hash))

    def test_production_without_env_fails(self) -> None:
        prompt = MagicMock()
        with self.assertRaises(RuntimeError):
            setup_admin(
                self.db,
                make_settings(APP_ENV="prod", CLIENT_URL="https://pool.test"),
                interactive=True,
                prompt=prompt,
            )
        prompt.assert_not_called()
        self.assertEqual(self._admins(), [])

    def test_non_interactive_without_env_fails(self) -> None:
        with self.assertRaises(RuntimeError):
            setup_admin(self.db, make_settings(), interactive=False)
        self.assertEqual(self._admins(), [])

    def test_prompts_when_interactive(self) -> None:
        prompt = MagicMock(
            return_value=AdminCredentials("operator", "op@pool.test", "Adm1nPassword")
        )
        user_id = setup_admin(self.db, make_settings(), interactive=True, prompt=prompt)
        prompt.assert_called_once()
        self.assertEqual(self.db.get(User, user_id).username, "operator")

    def test_invalid_env_falls_back_to_prompt(self) -> None:
        prompt = MagicMock(
            return_value=AdminCredentials("operator", "op@pool.test", "Adm1nPassword")
        )
        settings = make_settings(**{**ENV_ADMIN, "ADMIN_USERNAME": "x"})
        setup_admin(self.db, settings, interactive=True, prompt=prompt)
        prompt.assert_called_once()
        self.assertEqual([a.username for a in self._admins()], ["operator"])


if __name__ == "__main__":
    unittest.main()
