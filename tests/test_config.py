import pytest
from pydantic import ValidationError

from tracktv.core.auth import AuthContext
from tracktv.core.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.api_base_url == "http://localhost:3001/api"
    assert settings.request_timeout == 30
    assert settings.proxy is None


def test_base_url_trailing_slash_is_stripped():
    settings = Settings(_env_file=None, api_base_url="https://tracker.example/api/")
    assert settings.api_base_url == "https://tracker.example/api"


@pytest.mark.parametrize("url", ["ftp://tracker.example", "localhost:3001", "/api"])
def test_invalid_base_url(url):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, api_base_url=url)


@pytest.mark.parametrize(
    "proxy", ["http://proxy:8080", "socks5://127.0.0.1:1080", "socks5h://proxy:1"]
)
def test_valid_proxy(proxy):
    assert Settings(_env_file=None, proxy=proxy).proxy == proxy


@pytest.mark.parametrize("proxy", ["ftp://proxy:21", "http://"])
def test_invalid_proxy(proxy):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, proxy=proxy)


def test_auth_context_from_settings():
    settings = Settings(_env_file=None, api_token="abc")
    auth = AuthContext.from_settings(settings)

    assert auth.is_authenticated
    assert auth.headers() == {"Authorization": "Bearer abc"}

    auth.logout()
    assert not auth.is_authenticated


def test_empty_token_is_unauthenticated():
    assert not AuthContext(token="").is_authenticated
    assert not AuthContext().is_authenticated
