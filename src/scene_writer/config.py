"""Configuration loading and defaults."""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml
from dotenv import load_dotenv

from .llm.endpoints import clamp_timeout
from .llm.types import ProviderKind, ProviderSettings

DEFAULT_SETTINGS: Dict[str, Any] = {
    "provider": {
        "preset": "lmstudio",
        "endpoint": "",
        "api_key": "",
        "model": "",
    },
    "generation": {
        "temperature": 0.8,
        "max_tokens": 700,
        "enable_streaming": True,
        "request_timeout_seconds": 120,
    },
    "discovery": {
        "debounce_seconds": 0.65,
    },
}

# name -> (wire dialect, default endpoint)
PROVIDER_PRESETS: Dict[str, Tuple[ProviderKind, str]] = {
    "openai": (ProviderKind.OPENAI_COMPATIBLE, "https://api.openai.com/v1"),
    "openrouter": (ProviderKind.OPENAI_COMPATIBLE, "https://openrouter.ai/api/v1"),
    "lmstudio": (ProviderKind.OPENAI_COMPATIBLE, "http://localhost:1234/v1"),
    "ollama": (ProviderKind.OPENAI_COMPATIBLE, "http://localhost:11434/v1"),
    "openai_compatible": (ProviderKind.OPENAI_COMPATIBLE, "http://localhost:1234/v1"),
    "anthropic": (ProviderKind.ANTHROPIC, "https://api.anthropic.com"),
    "local_mock": (ProviderKind.LOCAL_MOCK, ""),
}

API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(settings_path: str = "config/settings.yaml", env_file: str | None = None) -> Dict[str, Any]:
    """Loads settings.yaml (if present) and merges it onto defaults."""
    load_dotenv(env_file)
    merged = deepcopy(DEFAULT_SETTINGS)
    config_path = Path(settings_path)
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as f:
            user_cfg = yaml.safe_load(f) or {}
        merged = _deep_merge(merged, user_cfg)
    return merged


def parse_provider_kind(value: str) -> ProviderKind:
    """Accepts a ProviderKind value or a preset name such as 'openrouter'."""
    key = (value or "").strip().lower().replace("-", "_")
    if key in PROVIDER_PRESETS:
        return PROVIDER_PRESETS[key][0]
    try:
        return ProviderKind(key)
    except ValueError as exc:
        raise ValueError(f"Unknown provider: {value}") from exc


def _resolve_api_key(preset: str, configured: str) -> str:
    configured = (configured or "").strip()
    if configured:
        return configured
    env_value = os.getenv("SCENE_WRITER_API_KEY")
    if not env_value and preset in API_KEY_ENV:
        env_value = os.getenv(API_KEY_ENV[preset])
    return (env_value or "").strip()


def provider_settings_from_config(config: Dict[str, Any]) -> ProviderSettings:
    provider_cfg = config.get("provider", {})
    generation_cfg = config.get("generation", {})

    preset = str(provider_cfg.get("preset", "lmstudio")).strip().lower()
    kind = parse_provider_kind(preset)
    default_endpoint = PROVIDER_PRESETS.get(preset, (kind, ""))[1]
    endpoint = str(provider_cfg.get("endpoint") or default_endpoint).strip()

    temperature = float(generation_cfg.get("temperature", 0.8))
    if not 0.0 <= temperature <= 2.0:
        raise ValueError(f"temperature must be within [0, 2], got {temperature}")
    max_tokens = int(generation_cfg.get("max_tokens", 700))
    if max_tokens <= 0:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")

    return ProviderSettings(
        provider=kind,
        endpoint=endpoint,
        api_key=_resolve_api_key(preset, str(provider_cfg.get("api_key") or "")),
        model=str(provider_cfg.get("model") or "").strip(),
        temperature=temperature,
        max_tokens=max_tokens,
        enable_streaming=bool(generation_cfg.get("enable_streaming", True)),
        request_timeout_seconds=clamp_timeout(generation_cfg.get("request_timeout_seconds", 120)),
    )
