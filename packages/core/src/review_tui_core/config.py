from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields, replace
from functools import reduce
from pathlib import Path
from typing import Mapping, Optional

from review_tui_core.errors import ConfigMalformedError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 3600

# Both names are read at home and project level, in this order.
CONFIG_FILES = (".reviewtuirc", ".prsweeprc")

ENV_DRY_RUN = "REVIEW_TUI_DRY_RUN"
ENV_CACHE = "REVIEW_TUI_CACHE"
ENV_CACHE_TTL = "REVIEW_TUI_CACHE_TTL"
ENV_BOT = "REVIEW_TUI_BOT"
ENV_TOKEN = "REVIEW_TUI_TOKEN"

_KNOWN_KEYS = {"dryRun", "cache", "bot", "token"}
_TTL_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class CacheConfig:
    enabled: bool = True
    ttl: int = DEFAULT_CACHE_TTL


@dataclass(frozen=True)
class Config:
    """Settings for one run, after every layer has been merged."""

    dry_run: bool = False
    cache: CacheConfig = field(default_factory=CacheConfig)
    bot: Optional[str] = None
    token: Optional[str] = None

    def redacted(self) -> dict:
        """Return a display-safe view of the settings with the token masked."""
        return {
            "dryRun": self.dry_run,
            "cache": {"enabled": self.cache.enabled, "ttl": self.cache.ttl},
            "bot": self.bot,
            "token": "<set>" if self.token else "<empty>",
        }


@dataclass(frozen=True)
class ConfigLayer:
    """One partial settings source. ``None`` means the layer does not set the field.

    The ``cache`` shorthand (a bare boolean) is normalized into
    ``cache_enabled`` when the layer is built, so merging only ever sees two
    independent optional fields.
    """

    dry_run: Optional[bool] = None
    cache_enabled: Optional[bool] = None
    cache_ttl: Optional[int] = None
    bot: Optional[str] = None
    token: Optional[str] = None

    def merge(self, other: ConfigLayer) -> ConfigLayer:
        """Return a new layer where every field ``other`` defines wins."""
        overrides = {f.name: getattr(other, f.name) for f in fields(other) if getattr(other, f.name) is not None}
        return replace(self, **overrides)

    def resolve(self) -> Config:
        """Fill the fields no layer defined with the built-in defaults."""
        defaults = Config()
        return Config(
            dry_run=defaults.dry_run if self.dry_run is None else self.dry_run,
            cache=CacheConfig(
                enabled=defaults.cache.enabled if self.cache_enabled is None else self.cache_enabled,
                ttl=defaults.cache.ttl if self.cache_ttl is None else self.cache_ttl,
            ),
            bot=self.bot,
            token=self.token,
        )


def merge_layers(layers) -> ConfigLayer:
    """Reduce layers left to right; later layers take precedence."""
    return reduce(ConfigLayer.merge, layers, ConfigLayer())


def _env_boolean(value: str | None) -> bool | None:
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    return None


def _env_ttl(value: str | None) -> int | None:
    if value is None or not _TTL_RE.match(value.strip()):
        return None
    return int(value.strip())


def _env_string(value: str | None) -> str | None:
    return value if value else None


def layer_from_env(environ: Mapping[str, str] | None = None) -> ConfigLayer:
    """Build a layer from the REVIEW_TUI_* variables. Unparseable values are ignored."""
    env = os.environ if environ is None else environ
    return ConfigLayer(
        dry_run=_env_boolean(env.get(ENV_DRY_RUN)),
        cache_enabled=_env_boolean(env.get(ENV_CACHE)),
        cache_ttl=_env_ttl(env.get(ENV_CACHE_TTL)),
        bot=_env_string(env.get(ENV_BOT)),
        token=_env_string(env.get(ENV_TOKEN)),
    )


def _expect(value, expected: type, key: str, path: Path):
    # bool is an int subclass; a ttl of `true` is still a type error.
    if value is None:
        return None
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ConfigMalformedError(f"Invalid value for {key!r} in {path}: expected {expected.__name__}, got {value!r}")
    return value


def layer_from_mapping(data: dict, path: Path) -> ConfigLayer:
    """Validate a parsed config file and turn it into a layer."""
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        logger.debug("Ignoring unknown keys in %s: %s", path, ", ".join(sorted(unknown)))

    cache = data.get("cache")
    cache_enabled = cache_ttl = None
    if isinstance(cache, bool):
        cache_enabled = cache
    elif isinstance(cache, dict):
        cache_enabled = _expect(cache.get("enabled"), bool, "cache.enabled", path)
        cache_ttl = _expect(cache.get("ttl"), int, "cache.ttl", path)
        if cache_ttl is not None and cache_ttl < 0:
            raise ConfigMalformedError(f"Invalid value for 'cache.ttl' in {path}: must be >= 0, got {cache_ttl}")
    elif cache is not None:
        raise ConfigMalformedError(f"Invalid value for 'cache' in {path}: expected a boolean or an object")

    return ConfigLayer(
        dry_run=_expect(data.get("dryRun"), bool, "dryRun", path),
        cache_enabled=cache_enabled,
        cache_ttl=cache_ttl,
        bot=_expect(data.get("bot"), str, "bot", path),
        token=_expect(data.get("token"), str, "token", path),
    )


def load_config_file(path: Path) -> ConfigLayer | None:
    """Read one JSON config file. Returns None when the file does not exist."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ConfigMalformedError(f"Could not read config file {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigMalformedError(f"Config file {path} is not valid UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigMalformedError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigMalformedError(f"Config file {path} must contain a JSON object.")

    logger.debug("Loaded config file %s", path)
    return layer_from_mapping(data, path)


def config_file_paths(cwd: Path, home: Path) -> list[Path]:
    """Return the config files in precedence order, lowest first."""
    return [base / name for base in (home, cwd) for name in CONFIG_FILES]


def resolve_config(
    cwd: str | Path,
    flags: ConfigLayer | None = None,
    *,
    home: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Resolve settings by merging (in order of precedence, lowest first):
      1. Built-in defaults
      2. ~/.reviewtuirc, ~/.prsweeprc
      3. ./.reviewtuirc, ./.prsweeprc
      4. REVIEW_TUI_* environment variables
      5. CLI flags
    """
    home_dir = Path(home) if home is not None else Path.home()
    file_layers = [
        layer for layer in (load_config_file(p) for p in config_file_paths(Path(cwd), home_dir)) if layer is not None
    ]
    layers = [*file_layers, layer_from_env(environ), flags or ConfigLayer()]
    return merge_layers(layers).resolve()
