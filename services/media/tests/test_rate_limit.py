import pytest

from app.rate_limit import rate_limiting_enabled


def test_rate_limiting_is_on_when_env_name_is_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ENV_NAME", raising=False)
    assert rate_limiting_enabled() is True


@pytest.mark.parametrize("env_name", ["production", "staging", ""])
def test_rate_limiting_is_on_outside_development(monkeypatch: pytest.MonkeyPatch, env_name: str) -> None:
    monkeypatch.setenv("ENV_NAME", env_name)
    assert rate_limiting_enabled() is True


def test_rate_limiting_is_off_in_development(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENV_NAME", "development")
    assert rate_limiting_enabled() is False
