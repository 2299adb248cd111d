"""
Agent configuration.

The YAML file (default ``/etc/keyward/config.yml``) looks like::

    url: https://keys.example.com
    token: s3cr3t
    cachedir: /var/cache/keyward
    verify: true
    public_key: /etc/keyward/signer.pem      # or a list of paths / PEM blocks
    timeout: 5000                              # milliseconds
    hostname-prefix: prod-
    hostname-suffix: .eu

Command-line flags override the file field by field; built-in defaults
fill whatever neither sets. The resolved ``AgentConfig`` is immutable and
handed explicitly to every component that needs it.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import yaml

from ..exceptions import ConfigParseError, ConfigReadError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/keyward/config.yml")
DEFAULT_CACHE_DIR = "/var/cache/keyward"
DEFAULT_TIMEOUT_MS = 5000


@dataclass(frozen=True)
class AgentConfig:
    url: str = ""
    token: str = ""
    cache_dir: str = ""
    verify: bool = False
    public_keys: Tuple[str, ...] = ()
    timeout_ms: int = 0
    hostname_prefix: str = ""
    hostname_suffix: str = ""

    @property
    def timeout_seconds(self) -> float:
        return (self.timeout_ms if self.timeout_ms > 0 else DEFAULT_TIMEOUT_MS) / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"url": self.url, "token": self.token}
        if self.cache_dir:
            d["cachedir"] = self.cache_dir
        if self.verify:
            d["verify"] = True
        if self.public_keys:
            d["public_key"] = (
                self.public_keys[0] if len(self.public_keys) == 1 else list(self.public_keys)
            )
        if self.timeout_ms:
            d["timeout"] = self.timeout_ms
        if self.hostname_prefix:
            d["hostname-prefix"] = self.hostname_prefix
        if self.hostname_suffix:
            d["hostname-suffix"] = self.hostname_suffix
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AgentConfig":
        return cls(
            url=_str_field(d, "url"),
            token=_str_field(d, "token"),
            cache_dir=_str_field(d, "cachedir"),
            verify=_bool_field(d, "verify"),
            public_keys=_public_keys_field(d),
            timeout_ms=_int_field(d, "timeout"),
            hostname_prefix=_str_field(d, "hostname-prefix"),
            hostname_suffix=_str_field(d, "hostname-suffix"),
        )


@dataclass(frozen=True)
class ConfigOverrides:
    """Values given on the command line; empty/None means "not given"."""
    url: str = ""
    token: str = ""
    cache_dir: str = ""
    verify: bool = False
    public_keys: Tuple[str, ...] = field(default_factory=tuple)
    timeout_ms: Optional[int] = None
    hostname_prefix: str = ""
    hostname_suffix: str = ""


# ── Field coercion ───────────────────────────────────────────────────


def _str_field(d: Dict[str, Any], name: str) -> str:
    value = d.get(name)
    if value is None:
        return ""
    if isinstance(value, (dict, list, bool)):
        raise ConfigParseError(f"config field {name!r} must be a string")
    return str(value)


def _bool_field(d: Dict[str, Any], name: str) -> bool:
    value = d.get(name)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "yes", "on", "1"):
        return True
    if isinstance(value, str) and value.lower() in ("false", "no", "off", "0", ""):
        return False
    raise ConfigParseError(f"config field {name!r} must be a boolean")


def _int_field(d: Dict[str, Any], name: str) -> int:
    value = d.get(name)
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ConfigParseError(f"config field {name!r} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigParseError(f"config field {name!r} must be an integer") from e


def _public_keys_field(d: Dict[str, Any]) -> Tuple[str, ...]:
    # A single string or a list of strings.
    value = d.get("public_key")
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigParseError("config field 'public_key' must be a string or a list of strings")


# ── Loading & resolution ─────────────────────────────────────────────


def parse_config(text: str) -> AgentConfig:
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Unable to parse config file: {e}") from e
    if doc is None:
        return AgentConfig()
    if not isinstance(doc, dict):
        raise ConfigParseError("Unable to parse config file: top level must be a mapping")
    return AgentConfig.from_dict(doc)


def load_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> AgentConfig:
    """Read and parse the YAML config file.

    Raises:
        ConfigReadError: the file is missing or unreadable.
        ConfigParseError: the file is not a valid configuration.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(f"Unable to read config file ({path}): {e}") from e
    logger.debug("Loaded config file %s", path)
    return parse_config(text)


def resolve_config(
    file_config: AgentConfig, overrides: Optional[ConfigOverrides] = None
) -> AgentConfig:
    """Effective configuration: flag > config file > built-in default."""
    o = overrides or ConfigOverrides()
    timeout_ms = file_config.timeout_ms
    if o.timeout_ms is not None and o.timeout_ms > 0:
        timeout_ms = o.timeout_ms
    if timeout_ms <= 0:
        timeout_ms = DEFAULT_TIMEOUT_MS

    return replace(
        file_config,
        url=o.url or file_config.url,
        token=o.token or file_config.token,
        cache_dir=o.cache_dir or file_config.cache_dir or DEFAULT_CACHE_DIR,
        verify=o.verify or file_config.verify,
        public_keys=tuple(o.public_keys) if o.public_keys else file_config.public_keys,
        timeout_ms=timeout_ms,
        hostname_prefix=o.hostname_prefix or file_config.hostname_prefix,
        hostname_suffix=o.hostname_suffix or file_config.hostname_suffix,
    )


def trust_specifiers(config: AgentConfig) -> Sequence[str]:
    """Trust key specifiers in effect, or nothing when verification is off."""
    return config.public_keys if config.verify else ()
