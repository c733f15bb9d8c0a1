from scholar.core.config import Settings


def _settings(monkeypatch, **values):
    monkeypatch.delenv("AI_PROXY_URL", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    return Settings(_env_file=None, **values)


def test_proxy_url_follows_port(monkeypatch):
    assert _settings(monkeypatch, port=8123).ai_proxy_url == "http://localhost:8123/api/ai/generate"


def test_proxy_url_default_port(monkeypatch):
    assert _settings(monkeypatch).ai_proxy_url == "http://localhost:5000/api/ai/generate"


def test_explicit_proxy_url_kept(monkeypatch):
    settings = _settings(monkeypatch, port=8123, ai_proxy_url="https://api.example.com/api/ai/generate")
    assert settings.ai_proxy_url == "https://api.example.com/api/ai/generate"


def test_port_from_environment(monkeypatch):
    monkeypatch.delenv("AI_PROXY_URL", raising=False)
    monkeypatch.setenv("PORT", "9001")
    assert Settings(_env_file=None).ai_proxy_url == "http://localhost:9001/api/ai/generate"
