"""Tests for token encryption and credential resolution policy."""

import pytest

SECRET = "test-encryption-secret"


class TestTokenCrypto:
    def test_round_trip(self):
        from workboard.sync.credentials import decrypt_token, encrypt_token

        payload = encrypt_token("xoxp-123-abc", SECRET)
        assert decrypt_token(payload, SECRET) == "xoxp-123-abc"

    def test_payload_format(self):
        from workboard.sync.credentials import encrypt_token

        iv, tag, ciphertext = encrypt_token("xoxp-1", SECRET).split(":")
        assert len(bytes.fromhex(iv)) == 16
        assert len(bytes.fromhex(tag)) == 16
        assert len(bytes.fromhex(ciphertext)) == len("xoxp-1")

    def test_random_iv(self):
        from workboard.sync.credentials import encrypt_token

        assert encrypt_token("xoxp-1", SECRET) != encrypt_token("xoxp-1", SECRET)

    def test_wrong_key_fails(self):
        from workboard.sync.credentials import decrypt_token, encrypt_token

        payload = encrypt_token("xoxp-1", SECRET)
        with pytest.raises(ValueError):
            decrypt_token(payload, "another-secret")

    @pytest.mark.parametrize("payload", ["", "abc", "aa:bb", "zz:zz:zz", "aa::bb"])
    def test_malformed_payload(self, payload):
        from workboard.sync.credentials import decrypt_token

        with pytest.raises(ValueError):
            decrypt_token(payload, SECRET)


class TestCredentialProvider:
    def _provider(self, key=SECRET):
        from workboard.sync.credentials import InMemoryCredentialProvider

        return InMemoryCredentialProvider(encryption_key=key)

    def test_resolves_user_token(self):
        provider = self._provider()
        provider.connect("u1", "xoxp-good", account_id="U07ABC")

        credential = provider.resolve("u1")

        assert credential.token == "xoxp-good"
        assert credential.connection.account_id == "U07ABC"

    def test_no_connection(self):
        from workboard.common.errors import CredentialError

        with pytest.raises(CredentialError) as exc_info:
            self._provider().resolve("nobody")
        assert exc_info.value.reason == "not_connected"

    def test_disconnected_connection(self):
        from workboard.common.errors import CredentialError
        from workboard.sync.credentials import Connection

        provider = self._provider()
        provider.add_connection(Connection(user_id="u1", status="disconnected", access_token_encrypted="a:b:c"))

        with pytest.raises(CredentialError) as exc_info:
            provider.resolve("u1")
        assert exc_info.value.reason == "not_connected"

    def test_missing_encryption_key_is_fatal(self):
        from workboard.common.errors import ConfigurationError
        from workboard.sync.credentials import Connection, encrypt_token

        provider = self._provider(key="")
        provider.add_connection(Connection(user_id="u1", access_token_encrypted=encrypt_token("xoxp-1", SECRET)))

        with pytest.raises(ConfigurationError):
            provider.resolve("u1")
        # Configuration problems never disconnect the account
        assert provider.load_connection("u1").is_connected

    def test_missing_key_checked_before_connection(self):
        from workboard.common.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            self._provider(key="").resolve("nobody")

    def test_decrypt_failure_disconnects(self):
        from workboard.common.errors import CredentialError
        from workboard.sync.credentials import Connection, encrypt_token

        provider = self._provider()
        provider.add_connection(
            Connection(user_id="u1", access_token_encrypted=encrypt_token("xoxp-1", "rotated-away"))
        )

        with pytest.raises(CredentialError) as exc_info:
            provider.resolve("u1")

        assert exc_info.value.reason == "decrypt_failed"
        connection = provider.load_connection("u1")
        assert connection.is_connected is False
        assert connection.reason == "decrypt_failed"

    def test_demo_token_disconnects(self):
        from workboard.common.errors import CredentialError

        provider = self._provider()
        provider.connect("u1", "demo_access_slack_123")

        with pytest.raises(CredentialError) as exc_info:
            provider.resolve("u1")

        assert exc_info.value.reason == "demo_token"
        assert provider.load_connection("u1").is_connected is False

    def test_bot_token_needs_reconnect(self):
        from workboard.common.errors import CredentialError

        provider = self._provider()
        provider.connect("u1", "xoxb-bot-token")

        with pytest.raises(CredentialError) as exc_info:
            provider.resolve("u1")

        assert exc_info.value.reason == "needs_reconnect"
        assert "user token scopes" in str(exc_info.value)
        assert provider.load_connection("u1").is_connected is False

    def test_connect_requires_key(self):
        from workboard.common.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            self._provider(key="").connect("u1", "xoxp-1")
