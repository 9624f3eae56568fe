from __future__ import annotations

import base64

import pytest

from webgrader.oracle import image_part, resolve_api_key


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return tmp_path


def test_explicit_key_wins(home, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")

    assert resolve_api_key("arg-key") == "arg-key"


def test_netrc_before_environment(home, monkeypatch):
    netrc_path = home / ".netrc"
    netrc_path.write_text("machine OPENAI login netrc-key password unused\n", encoding="utf-8")
    netrc_path.chmod(0o600)
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")

    assert resolve_api_key() == "netrc-key"


def test_environment_fallback(home, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")

    assert resolve_api_key() == "env-key"


def test_missing_key(home):
    with pytest.raises(ValueError):
        resolve_api_key()


def test_image_part_is_data_url():
    part = image_part(b"\x89PNG")

    assert part["type"] == "image_url"
    prefix, encoded = part["image_url"]["url"].split(",", 1)
    assert prefix == "data:image/png;base64"
    assert base64.b64decode(encoded) == b"\x89PNG"
