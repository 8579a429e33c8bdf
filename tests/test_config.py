from shipping_quotes.core.config import Settings


def test_cors_origins_from_comma_separated_env(monkeypatch):
    monkeypatch.setenv("BACKEND_CORS_ORIGINS", "https://a.example, https://b.example")

    settings = Settings(_env_file=None)

    assert settings.BACKEND_CORS_ORIGINS == ["https://a.example", "https://b.example"]


def test_cors_origins_from_json_env(monkeypatch):
    monkeypatch.setenv("BACKEND_CORS_ORIGINS", '["https://a.example"]')

    assert Settings(_env_file=None).BACKEND_CORS_ORIGINS == ["https://a.example"]


def test_cors_origins_default(monkeypatch):
    monkeypatch.delenv("BACKEND_CORS_ORIGINS", raising=False)

    assert Settings(_env_file=None).BACKEND_CORS_ORIGINS == ["*"]
