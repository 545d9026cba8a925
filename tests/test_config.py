"""Unit tests for pickpool.core.config: required secrets and derived settings."""

import os
import unittest
from unittest.mock import patch

from pydantic import ValidationError

from pickpool.core.config import Settings
from support import make_settings


class TestRequiredSecret(unittest.TestCase):
    """Startup must fail when the access-token secret is missing or blank."""

    def test_missing_jwt_secret_raises(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValidationError):
                Settings(_env_file=None)

    def test_blank_jwt_secret_raises(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_SECRET="   ")

    def test_secret_read_from_environment(self) -> None:
        with patch.dict(os.environ, {"JWT_SECRET": "from-env"}, clear=True):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.JWT_SECRET.get_secret_value(), "from-env")
        self.assertIsNone(settings.REFRESH_SECRET)


class TestDerivedSettings(unittest.TestCase):
    def test_bcrypt_cost_depends_on_posture(self) -> None:
        self.assertEqual(make_settings(APP_ENV="prod").bcrypt_rounds, 12)
        self.assertEqual(make_settings(APP_ENV="dev").bcrypt_rounds, 10)

    def test_token_lifetimes_default(self) -> None:
        settings = make_settings()
        self.assertEqual(settings.ACCESS_TOKEN_EXPIRE_MINUTES, 15)
        self.assertEqual(settings.REFRESH_TOKEN_EXPIRE_DAYS, 7)
        self.assertEqual(settings.PASSWORD_RESET_EXPIRE_MINUTES, 60)
        self.assertFalse(settings.REFRESH_ROTATE_ON_USE)

    def test_mail_configured_needs_host_and_user(self) -> None:
        self.assertTrue(make_settings().mail_configured)
        self.assertFalse(make_settings(SMTP_HOST=None).mail_configured)
        self.assertFalse(make_settings(SMTP_USER="  ").mail_configured)

    def test_blank_optional_secrets_become_none(self) -> None:
        settings = make_settings(REFRESH_SECRET="", ADMIN_PASSWORD=" ")
        self.assertIsNone(settings.REFRESH_SECRET)
        self.assertIsNone(settings.ADMIN_PASSWORD)

    def test_client_url_trailing_slash_stripped(self) -> None:
        self.assertEqual(make_settings(CLIENT_URL="https://pool.test/").CLIENT_URL, "https://pool.test")

    def test_database_url_pinned_to_psycopg2(self) -> None:
        expected = "postgresql+psycopg2://u:p@db:5432/pool"
        for url in (
            "postgresql://u:p@db:5432/pool",
            "postgres://u:p@db:5432/pool",
            " postgresql+psycopg2://u:p@db:5432/pool ",
        ):
            with self.subTest(url=url):
                self.assertEqual(make_settings(DATABASE_URL=url).DATABASE_URL, expected)
        self.assertTrue(make_settings().DATABASE_URL.startswith("postgresql+psycopg2://"))

    def test_rejects_non_postgres_database_url(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(DATABASE_URL="mysql://root@localhost/pool")


if __name__ == "__main__":
    unittest.main()
