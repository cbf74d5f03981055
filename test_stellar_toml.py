import unittest
from unittest.mock import patch

import requests

from sep6_errors import ErrorKind, Sep6Error
from stellar_toml import fetch_signing_key, stellar_toml_url


STELLAR_TOML = b'''
NETWORK_PASSPHRASE = "Public Global Stellar Network ; September 2015"
TRANSFER_SERVER = "https://anchor.example.com/sep6"
SIGNING_KEY = "GBWMCCC3NHSKLAOJDBKKYW7SSH2PFTTNVFKWSGLWGDLEBKLOVP5JLBBP"

[[CURRENCIES]]
code = "USDC"
'''


class _FakeResp:
    def __init__(self, status_code=200, content=b""):
        self.status_code = status_code
        self.content = content


class TestStellarToml(unittest.TestCase):
    def test_url(self):
        self.assertEqual(
            stellar_toml_url("https://anchor.example.com/"),
            "https://anchor.example.com/.well-known/stellar.toml",
        )

    @patch("stellar_toml.requests.get")
    def test_signing_key(self, get_mock):
        get_mock.return_value = _FakeResp(content=STELLAR_TOML)
        key = fetch_signing_key("https://anchor.example.com")
        self.assertEqual(key, "GBWMCCC3NHSKLAOJDBKKYW7SSH2PFTTNVFKWSGLWGDLEBKLOVP5JLBBP")
        args, kwargs = get_mock.call_args
        self.assertEqual(args[0], "https://anchor.example.com/.well-known/stellar.toml")
        self.assertEqual(kwargs.get("timeout"), 30.0)

    @patch("stellar_toml.requests.get")
    def test_failures(self, get_mock):
        cases = [
            (_FakeResp(status_code=404), "status_code"),
            (_FakeResp(content=b'SIGNING_KEY = "unterminated'), "toml_decode"),
            (_FakeResp(content=b"\xff\xfe"), "toml_decode"),
            (_FakeResp(content=b'TRANSFER_SERVER = "https://anchor.example.com"'), "signing_key"),
        ]
        for resp, field in cases:
            with self.subTest(field=field):
                get_mock.return_value = resp
                with self.assertRaises(Sep6Error) as ctx:
                    fetch_signing_key("https://anchor.example.com")
                self.assertEqual(ctx.exception.kind, ErrorKind.FETCH)
                self.assertEqual(ctx.exception.field, field)

    @patch("stellar_toml.requests.get")
    def test_network_error(self, get_mock):
        get_mock.side_effect = requests.Timeout("timed out")
        with self.assertRaises(Sep6Error) as ctx:
            fetch_signing_key("https://anchor.example.com")
        self.assertEqual(ctx.exception.field, "url")


if __name__ == "__main__":
    unittest.main()
