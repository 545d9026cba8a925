"""Test environment: settings must be loadable before pickpool is imported."""

import os

os.environ.setdefault("JWT_SECRET", "test-access-secret-not-for-production")
os.environ.setdefault("APP_ENV", "dev")
os.environ["BOOTSTRAP_ADMIN_ON_STARTUP"] = "false"
