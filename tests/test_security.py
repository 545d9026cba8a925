"""Unit tests for pickpool.core.security: password policy, hashing, identity field rules."""

import unittest

from pickpool.core.security import (
    USERNAME_RULE,
    hash_password,
    normalize_email,
    validate_email,
    validate_password_strength,
    validate_registration,
    validate_username,
    verify_password,
)

# Lowest bcrypt cost keeps these tests fast; production cost is covered by config tests.
ROUNDS = 4


class TestPasswordStrength(unittest.TestCase):
    """validate_password_strength reports one message per violated rule."""

    def test_strong_password_has_no_violations(self) -> None:
        for password in ("Passw0rd1", "NewPass1A", "aB3" * 3, "Very Long Passphrase 42"):
            with self.subTest(password=password):
                self.assertEqual(validate_password_strength(password), [])

    def test_each_rule_is_reported_specifically(self) -> None:
        cases = {
            "Sh0rt": "Password must be at least 8 characters",
            "alllower1": "Password must contain at least one uppercase letter",
            "ALLUPPER1": "Password must contain at least one lowercase letter",
            "NoDigitsHere": "Password must contain at least one number",
        }
        for password, expected in cases.items():
            with self.subTest(password=password):
                self.assertEqual(validate_password_strength(password), [expected])

    def test_empty_password_violates_every_rule(self) -> None:
        self.assertEqual(len(validate_password_strength("")), 4)


class TestHashing(unittest.TestCase):
    """hash_password / verify_password with bcrypt."""

    def test_round_trip(self) -> None:
        hashed = hash_password("Passw0rd1", ROUNDS)
        self.assertNotEqual(hashed, "Passw0rd1")
        self.assertTrue(verify_password("Passw0rd1", hashed))

    def test_wrong_password_fails(self) -> None:
        hashed = hash_password("Passw0rd1", ROUNDS)
        self.assertFalse(verify_password("Passw0rd2", hashed))

    def test_salted_hashes_differ(self) -> None:
        self.assertNotEqual(hash_password("Passw0rd1", ROUNDS), hash_password("Passw0rd1", ROUNDS))

    def test_work_factor_is_encoded_in_hash(self) -> None:
        self.assertTrue(hash_password("Passw0rd1", 5).startswith("$2b$05$"))

    def test_malformed_hash_returns_false(self) -> None:
        self.assertFalse(verify_password("Passw0rd1", "not-a-bcrypt-hash"))


class TestIdentityFields(unittest.TestCase):
    def test_username_rules(self) -> None:
        for ok in ("alice", "bob_42", "ABC", "a" * 20):
            with self.subTest(username=ok):
                self.assertTrue(validate_username(ok))
        for bad in ("ab", "a" * 21, "alice!", "with space", "", "<script>"):
            with self.subTest(username=bad):
                self.assertFalse(validate_username(bad))

    def test_email_rules(self) -> None:
        self.assertTrue(validate_email("alice@x.com"))
        self.assertFalse(validate_email("alice"))
        self.assertFalse(validate_email("alice@"))
        self.assertFalse(validate_email(""))
        self.assertFalse(validate_email("a" * 95 + "@x.com"))

    def test_email_on_test_domains_accepted(self) -> None:
        for email in ("admin@pool.test", "bob@mail.pool.test"):
            with self.subTest(email=email):
                self.assertTrue(validate_email(email))
        self.assertEqual(validate_registration("bob", "bob@pool.test", "Passw0rdOK"), [])

    def test_normalize_email(self) -> None:
        self.assertEqual(normalize_email("  Alice@X.COM "), "alice@x.com")

    def test_registration_collects_all_violations_in_order(self) -> None:
        errors = validate_registration("a!", "nope", "short")
        self.assertEqual(errors[0], USERNAME_RULE)
        self.assertEqual(errors[1], "Invalid email address")
        self.assertIn("Password must be at least 8 characters", errors)
        self.assertIn("Password must contain at least one number", errors)

    def test_registration_accepts_valid_triple(self) -> None:
        self.assertEqual(validate_registration("alice", "alice@x.com", "Passw0rd1"), [])


if __name__ == "__main__":
    unittest.main()
