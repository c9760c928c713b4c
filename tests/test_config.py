import pytest

from scene_writer.config import load_settings, parse_provider_kind, provider_settings_from_config
from scene_writer.llm.types import ProviderKind


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("SCENE_WRITER_API_KEY", "OPENAI_API_KEY", "OPENROUTER_API_KEY", "ANTHROPIC_API_KEY"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch


def test_defaults_without_settings_file(tmp_path, clean_env):
    config = load_settings(str(tmp_path / "missing.yaml"), env_file=str(tmp_path / "missing.env"))
    settings = provider_settings_from_config(config)

    assert settings.provider == ProviderKind.OPENAI_COMPATIBLE
    assert settings.endpoint == "http://localhost:1234/v1"
    assert settings.api_key == ""
    assert settings.temperature == 0.8
    assert settings.max_tokens == 700
    assert settings.enable_streaming is True
    assert config["discovery"]["debounce_seconds"] == 0.65


def test_yaml_overrides_merge_onto_defaults(tmp_path, clean_env):
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text(
        "provider:\n"
        "  preset: anthropic\n"
        "  model: claude-test\n"
        "generation:\n"
        "  max_tokens: 300\n"
        "  request_timeout_seconds: 99999\n",
        encoding="utf-8",
    )

    config = load_settings(str(settings_path), env_file=str(tmp_path / "missing.env"))
    settings = provider_settings_from_config(config)

    assert settings.provider == ProviderKind.ANTHROPIC
    assert settings.endpoint == "https://api.anthropic.com"
    assert settings.model == "claude-test"
    assert settings.max_tokens == 300
    assert settings.temperature == 0.8
    assert settings.request_timeout_seconds == 3600.0


def test_api_key_resolution_order(tmp_path, clean_env):
    config = {"provider": {"preset": "openrouter"}}

    clean_env.setenv("OPENROUTER_API_KEY", "from-preset-env")
    assert provider_settings_from_config(config).api_key == "from-preset-env"

    clean_env.setenv("SCENE_WRITER_API_KEY", "from-app-env")
    assert provider_settings_from_config(config).api_key == "from-app-env"

    config["provider"]["api_key"] = " explicit "
    assert provider_settings_from_config(config).api_key == "explicit"


def test_dotenv_file_supplies_key(tmp_path, clean_env):
    env_file = tmp_path / ".env"
    env_file.write_text("ANTHROPIC_API_KEY=from-dotenv\n", encoding="utf-8")
    clean_env.setenv("ANTHROPIC_API_KEY", "placeholder")
    clean_env.delenv("ANTHROPIC_API_KEY")

    config = load_settings(str(tmp_path / "missing.yaml"), env_file=str(env_file))
    config["provider"]["preset"] = "anthropic"

    assert provider_settings_from_config(config).api_key == "from-dotenv"


def test_invalid_generation_values(clean_env):
    with pytest.raises(ValueError, match="temperature"):
        provider_settings_from_config({"generation": {"temperature": 3}})
    with pytest.raises(ValueError, match="max_tokens"):
        provider_settings_from_config({"generation": {"max_tokens": 0}})


def test_parse_provider_kind():
    assert parse_provider_kind("OpenRouter") == ProviderKind.OPENAI_COMPATIBLE
    assert parse_provider_kind("local-mock") == ProviderKind.LOCAL_MOCK
    assert parse_provider_kind("anthropic") == ProviderKind.ANTHROPIC
    with pytest.raises(ValueError, match="Unknown provider"):
        parse_provider_kind("cohere")
