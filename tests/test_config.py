"""Unit tests for app.core.config.Settings validators."""

import unittest

from pydantic import ValidationError

from tests.support import make_settings


class TestSettingsDefaults(unittest.TestCase):
    def test_token_lifetimes(self) -> None:
        settings = make_settings()
        self.assertEqual(settings.JWT_EXPIRE_MINUTES, 15)
        self.assertEqual(settings.JWT_REFRESH_EXPIRE_MINUTES, 7 * 24 * 60)
        self.assertEqual(settings.API_PREFIX, "/api")

    def test_cors_origins_split(self) -> None:
        settings = make_settings(CORS_ORIGINS="https://a.example, https://b.example")
        self.assertEqual(settings.cors_origins, ["https://a.example", "https://b.example"])


class TestSettingsValidation(unittest.TestCase):
    def test_refresh_secret_must_differ(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_SECRET="same", JWT_REFRESH_SECRET="same")

    def test_blank_secret(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_SECRET="  ")

    def test_database_url_scheme(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(DATABASE_URL="mysql://root@localhost/db")
        self.assertTrue(
            make_settings(DATABASE_URL="postgresql://u:p@h/db").DATABASE_URL.startswith("postgresql")
        )

    def test_expire_minutes_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_EXPIRE_MINUTES=0)
        with self.assertRaises(ValidationError):
            make_settings(JWT_REFRESH_EXPIRE_MINUTES=0)

    def test_bcrypt_rounds_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(BCRYPT_ROUNDS=3)

    def test_log_level(self) -> None:
        self.assertEqual(make_settings(LOG_LEVEL="debug").LOG_LEVEL, "DEBUG")
        with self.assertRaises(ValidationError):
            make_settings(LOG_LEVEL="chatty")

    def test_api_prefix(self) -> None:
        self.assertEqual(make_settings(API_PREFIX="/v2/").API_PREFIX, "/v2")
        with self.assertRaises(ValidationError):
            make_settings(API_PREFIX="api")


if __name__ == "__main__":
    unittest.main()
