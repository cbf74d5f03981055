import unittest

from sep6_errors import Sep6Error
from settings import DEFAULT_HORIZON_URL, load_settings


BASE_ENV = {
    "SEP6_SECRET_KEY": "SEXAMPLEWALLETSEED",
    "SEP6_ANCHOR_URL": "https://anchor.example.com",
    "SEP6_HOME_DOMAIN": "wallet.example.com",
}


class TestLoadSettings(unittest.TestCase):
    def test_defaults(self):
        settings = load_settings(BASE_ENV)
        self.assertEqual(settings.horizon_url, DEFAULT_HORIZON_URL)
        self.assertEqual(settings.max_signature_age_minutes, 2)
        self.assertEqual(settings.webhook_path, "webhook")
        self.assertEqual((settings.dispatch_workers, settings.dispatch_queue), (4, 64))
        self.assertEqual(settings.dispatch_overflow, "reject")
        self.assertEqual(settings.port, 8000)

    def test_overrides(self):
        env = dict(BASE_ENV, SEP6_MAX_SIGNATURE_AGE_MINUTES="5", SEP6_DISPATCH_OVERFLOW="block",
                   SEP6_DISPATCH_WORKERS="8", PORT="9000", SEP6_WEBHOOK_PATH="/cb")
        settings = load_settings(env)
        self.assertEqual(settings.max_signature_age_minutes, 5.0)
        self.assertEqual(settings.dispatch_overflow, "block")
        self.assertEqual(settings.dispatch_workers, 8)
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.webhook_path, "/cb")

    def test_missing_required(self):
        for name in BASE_ENV:
            env = {k: v for k, v in BASE_ENV.items() if k != name}
            with self.subTest(name=name):
                with self.assertRaises(Sep6Error) as ctx:
                    load_settings(env)
                self.assertEqual(ctx.exception.field, name)

    def test_bad_values(self):
        with self.assertRaises(Sep6Error) as ctx:
            load_settings(dict(BASE_ENV, SEP6_DISPATCH_WORKERS="many"))
        self.assertEqual(ctx.exception.field, "SEP6_DISPATCH_WORKERS")
        with self.assertRaises(Sep6Error) as ctx:
            load_settings(dict(BASE_ENV, SEP6_DISPATCH_OVERFLOW="drop"))
        self.assertEqual(ctx.exception.field, "SEP6_DISPATCH_OVERFLOW")

    def test_signature_age_must_be_positive_and_finite(self):
        for raw in ("nan", "inf", "0", "-1"):
            with self.subTest(raw=raw):
                with self.assertRaises(Sep6Error) as ctx:
                    load_settings(dict(BASE_ENV, SEP6_MAX_SIGNATURE_AGE_MINUTES=raw))
                self.assertEqual(ctx.exception.field, "SEP6_MAX_SIGNATURE_AGE_MINUTES")


if __name__ == "__main__":
    unittest.main()
