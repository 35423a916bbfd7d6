"""Unit tests for mpki.services.passphrase module."""

import pytest

from mpki.services.errors import PromptDeniedError
from mpki.services.passphrase import (
    EnvSecretProvider,
    StaticSecretProvider,
    TerminalSecretProvider,
    default_secret_provider,
)


class TestStaticSecretProvider:
    """Tests for StaticSecretProvider."""

    def test_returns_bytes_and_records_prompt(self):
        provider = StaticSecretProvider("pw")

        assert provider.passphrase("Passphrase for alice.s") == b"pw"
        assert provider.prompts == ["Passphrase for alice.s"]

    @pytest.mark.parametrize("value", [None, ""])
    def test_refuses(self, value):
        with pytest.raises(PromptDeniedError):
            StaticSecretProvider(value).passphrase("prompt")


class TestEnvSecretProvider:
    """Tests for EnvSecretProvider and default_secret_provider."""

    def test_from_environment(self):
        provider = EnvSecretProvider({"MPKI_PASSPHRASE": "from-env"})
        assert provider.passphrase("prompt") == b"from-env"

    def test_default_prefers_environment(self):
        assert isinstance(default_secret_provider({"MPKI_PASSPHRASE": "x"}), EnvSecretProvider)

    def test_default_is_terminal(self):
        assert isinstance(default_secret_provider({}), TerminalSecretProvider)


class TestTerminalSecretProvider:
    """Tests for TerminalSecretProvider with getpass patched out."""

    def test_prompt(self, monkeypatch):
        monkeypatch.setattr("mpki.utils.cli_ui.getpass.getpass", lambda prompt: "secret")

        assert TerminalSecretProvider().passphrase("Passphrase") == b"secret"

    def test_confirm_mismatch(self, monkeypatch):
        answers = iter(["a", "b"] * 3)
        monkeypatch.setattr("mpki.utils.cli_ui.getpass.getpass", lambda prompt: next(answers))

        with pytest.raises(PromptDeniedError):
            TerminalSecretProvider().passphrase("New passphrase", confirm=True)

    def test_confirm_second_attempt(self, monkeypatch):
        answers = iter(["a", "b", "c", "c"])
        monkeypatch.setattr("mpki.utils.cli_ui.getpass.getpass", lambda prompt: next(answers))

        assert TerminalSecretProvider().passphrase("New passphrase", confirm=True) == b"c"

    def test_empty(self, monkeypatch):
        monkeypatch.setattr("mpki.utils.cli_ui.getpass.getpass", lambda prompt: "")

        with pytest.raises(PromptDeniedError):
            TerminalSecretProvider().passphrase("Passphrase")

    def test_eof(self, monkeypatch):
        def no_input(prompt):
            raise EOFError

        monkeypatch.setattr("mpki.utils.cli_ui.getpass.getpass", no_input)

        with pytest.raises(PromptDeniedError):
            TerminalSecretProvider().passphrase("Passphrase")
