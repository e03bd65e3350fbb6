"""
HEAL-EYE — Configuration

Three-tier configuration loading:
  1. Base file heal_eye.yaml (or HEAL_EYE_CONFIG_PATH)
  2. Per-environment overlay files (config/{HE_ENV}.yaml merged over base)
  3. Environment variable overrides (HE_ prefixed)

Credentials are read from LANGBASE_API_KEY, OPENAI_API_KEY and
GOOGLE_API_KEY. This module is the only place that touches the process
environment: the result is a HealEyeConfig which the workflow, the
gateway and the providers receive explicitly.

Usage:
    from healeye.config import load_config

    cfg = load_config()
    cfg.validate_credentials()   # AuthError when nothing usable is set

Environment variables:
    HE_ENV                 — active profile (dev, staging, prod)
    HE_CONFIG_DIR          — directory for overlay files (default: config/)
    HE_*                   — flat overrides (e.g., HE_RETRY_RETRIES=5)
"""

from __future__ import annotations

import copy
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from healeye.errors import AuthError
from healeye.retry import RetryPolicy

logger = logging.getLogger("heal_eye.config")

PLATFORM_KEY_PREFIX = re.compile(r"^user_|^org_")
GOOGLE_KEY_PREFIX = "AIzaSy"

DEFAULT_MEMORIES = [
    "hospital-records-1760877450386",
    "health-trends-data-p8ygrven",
    "festival-calendar-w7obm9ap",
    "medical-protocols-hkivdz37",
]

DEFAULT_MODELS = {
    "openai": "gpt-5-mini-2025-08-07",
    "google": "gemini-2.5-flash",
}

_META_VARS = {"HE_ENV", "HE_CONFIG_DIR"}
_TOP_LEVEL_KEYS = {"log_level", "temperature"}


# ═══════════════════════════════════════════════════════════════════
# Deep Merge
# ═══════════════════════════════════════════════════════════════════

def deep_merge(base: dict, overlay: dict) -> dict:
    """
    Deep-merge overlay into base. Overlay values win.
    Lists are replaced (not appended). Dicts are recursed.
    """
    result = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _set_nested(d: dict, keys: list[str], value: Any):
    for key in keys[:-1]:
        d = d.setdefault(key, {})
    d[keys[-1]] = value


# ═══════════════════════════════════════════════════════════════════
# Config object
# ═══════════════════════════════════════════════════════════════════

@dataclass
class HealEyeConfig:
    """Everything the workflow needs, resolved once per process."""
    platform_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""
    models: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MODELS))
    memories: list[str] = field(default_factory=lambda: list(DEFAULT_MEMORIES))
    memory_url: str = "https://api.langbase.com/v1/memory/retrieve"
    top_k: int = 5
    temperature: float = 1.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    log_level: str = "INFO"
    source: str = "defaults"

    @property
    def has_openai_key(self) -> bool:
        """An OpenAI key that is not actually a Google key."""
        return bool(self.openai_api_key) and not self.openai_api_key.startswith(GOOGLE_KEY_PREFIX)

    def credential_for(self, provider: str) -> str:
        if provider == "openai":
            return self.openai_api_key if self.has_openai_key else ""
        if provider == "google":
            return self.google_api_key
        return ""

    def model_for(self, provider: str) -> str:
        return self.models.get(provider) or DEFAULT_MODELS[provider]

    def validate_credentials(self) -> None:
        """
        Raise AuthError when no call could possibly succeed.

        The platform key is required for context retrieval, and at
        least one reasoning provider must have a key. A platform key
        with an unexpected prefix is accepted with a warning.
        """
        if not self.platform_api_key:
            raise AuthError(
                "LANGBASE_API_KEY missing from configuration",
                details={"expected": "user_... or org_..."},
            )
        if not PLATFORM_KEY_PREFIX.match(self.platform_api_key):
            logger.warning(
                "Unexpected platform API key prefix. Key should start with user_ or org_. "
                "Provided prefix: %s", self.platform_api_key[:8],
            )
        if not self.has_openai_key and not self.google_api_key:
            raise AuthError(
                "No reasoning provider credential configured",
                details={"expected": ["OPENAI_API_KEY", "GOOGLE_API_KEY"]},
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: str = "dict") -> HealEyeConfig:
        creds = data.get("credentials") or {}
        retrieval = data.get("retrieval") or {}
        return cls(
            platform_api_key=str(creds.get("platform_api_key") or ""),
            openai_api_key=str(creds.get("openai_api_key") or ""),
            google_api_key=str(creds.get("google_api_key") or ""),
            models={**DEFAULT_MODELS, **(data.get("models") or {})},
            memories=list(retrieval.get("memories") or DEFAULT_MEMORIES),
            memory_url=str(retrieval.get("url") or cls.memory_url),
            top_k=int(retrieval.get("top_k", cls.top_k)),
            temperature=float(data.get("temperature", cls.temperature)),
            retry=RetryPolicy.from_dict(data.get("retry")),
            log_level=str(data.get("log_level", cls.log_level)).upper(),
            source=source,
        )


# ═══════════════════════════════════════════════════════════════════
# Loading
# ═══════════════════════════════════════════════════════════════════

def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _load_overlay_file(base_path: Path, env: str, config_dir: str) -> dict[str, Any]:
    """config/{env}.yaml next to the base file or in config_dir."""
    if not env:
        return {}
    candidates = [
        Path(config_dir) / f"{env}.yaml",
        Path(config_dir) / f"{env}.yml",
        base_path.parent / "config" / f"{env}.yaml",
    ]
    for path in candidates:
        if path.exists():
            overlay = _read_yaml(path)
            logger.info("Loaded config overlay: %s (%d keys)", path, len(overlay))
            return overlay
    logger.debug("No config overlay found for env=%s", env)
    return {}


def _load_env_overrides(environ: Mapping[str, str], prefix: str = "HE_") -> dict[str, Any]:
    """
    HE_SECTION_KEY=value → {"section": {"key": value}}.
    HE_SECTION alone names no key and is ignored.
    Values are parsed as YAML scalars so numbers stay numbers.
    """
    overrides: dict[str, Any] = {}
    for key, value in environ.items():
        if not key.startswith(prefix) or key in _META_VARS:
            continue
        name = key[len(prefix):].lower()
        try:
            parsed = yaml.safe_load(value)
        except yaml.YAMLError:
            parsed = value
        if name in _TOP_LEVEL_KEYS:
            overrides[name] = parsed
        elif "_" in name:
            _set_nested(overrides, name.split("_", 1), parsed)
        else:
            logger.warning("Ignoring %s: a whole config section cannot be set from one variable", key)
    return overrides


def load_config(
    base_path: str | os.PathLike | None = None,
    env: str = "",
    environ: Mapping[str, str] | None = None,
) -> HealEyeConfig:
    """
    Build a HealEyeConfig from file, overlay and environment.

    Priority (highest wins):
      1. Credential env vars (LANGBASE_API_KEY, OPENAI_API_KEY, GOOGLE_API_KEY)
      2. HE_* overrides
      3. Overlay file config/{env}.yaml
      4. Base file
    """
    environ = os.environ if environ is None else environ
    path = Path(base_path or environ.get("HEAL_EYE_CONFIG_PATH") or "heal_eye.yaml")
    env = env or environ.get("HE_ENV", "")

    raw: dict[str, Any] = {}
    if path.is_file():
        raw = _read_yaml(path)
        logger.debug("Loaded base config: %s", path)

    overlay = _load_overlay_file(path, env, environ.get("HE_CONFIG_DIR", "config"))
    if overlay:
        raw = deep_merge(raw, overlay)

    env_overrides = _load_env_overrides(environ)
    if env_overrides:
        raw = deep_merge(raw, env_overrides)

    creds = {
        "platform_api_key": environ.get("LANGBASE_API_KEY", ""),
        "openai_api_key": environ.get("OPENAI_API_KEY", ""),
        "google_api_key": environ.get("GOOGLE_API_KEY", ""),
    }
    raw = deep_merge(raw, {"credentials": {k: v for k, v in creds.items() if v}})

    return HealEyeConfig.from_dict(raw, source=str(path) if path.is_file() else "defaults")
