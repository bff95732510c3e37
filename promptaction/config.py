"""Executor configuration.

Centralizes all tunable parameters of the command executor: feature toggles,
loop limits, token budgets and compaction caps. Values come from (in order of
precedence) explicit keyword overrides, ``PROMPTACTION_*`` environment
variables, an optional YAML file, and the dataclass defaults.
"""

import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "PROMPTACTION_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class LLMSettings:
    """Provider selection for the default LLM client."""

    provider: Optional[str] = None
    """``openai`` or ``deepseek``. ``None`` picks by available credentials."""
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: int = 60


@dataclass
class ExecutorConfig:
    """All executor configuration centralized in one place."""

    # Feature toggles
    compact_tool_results: bool = True
    """Compact tool results before echoing them back into the conversation."""
    skip_final_llm_call: bool = True
    """Exit after a fully successful write/search round instead of asking the
    model to restate the result."""
    trim_core_tools: bool = True
    """Narrow the always-on search tools when intent is confidently table-only."""
    fast_path_enabled: bool = True
    """Try deterministic pattern execution before calling the model."""

    # Loop control
    max_tool_iterations: int = 10
    tool_repeat_threshold: int = 2
    max_consecutive_tool_errors: int = 3
    max_batch_nudges: int = 2
    """Max "you missed N items" continuations per execution."""

    # LLM calls
    temperature: float = 0.1
    tool_round_max_tokens: int = 1024
    """Token budget while more tool rounds are expected."""
    final_round_max_tokens: int = 4096
    """Token budget once a tool result is already in the conversation."""

    # Compaction caps
    compact_max_string_chars: int = 2000
    compact_max_array_items: int = 25
    compact_max_object_keys: int = 40
    compact_max_depth: int = 5

    llm: LLMSettings = field(default_factory=LLMSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExecutorConfig":
        """Build a config from a plain mapping, ignoring unknown keys."""
        known = {f.name: f for f in dataclasses.fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            if key == "llm":
                llm_fields = {f.name for f in dataclasses.fields(LLMSettings)}
                kwargs["llm"] = LLMSettings(**{k: v for k, v in (value or {}).items() if k in llm_fields})
            elif key in known:
                kwargs[key] = _coerce(value, known[key].type, key)
            else:
                logger.warning(f"[Config] Ignoring unknown key '{key}'")
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, base: Optional["ExecutorConfig"] = None) -> "ExecutorConfig":
        """Overlay ``PROMPTACTION_*`` environment variables on *base* (or defaults)."""
        environ = os.environ if environ is None else environ
        config = dataclasses.replace(base) if base is not None else cls()
        for f in dataclasses.fields(cls):
            if f.name == "llm":
                continue
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is not None:
                setattr(config, f.name, _coerce(raw, f.type, f.name))

        llm = dataclasses.replace(config.llm)
        for name in ("provider", "model", "base_url"):
            raw = environ.get(f"{ENV_PREFIX}LLM_{name.upper()}")
            if raw:
                setattr(llm, name, raw)
        config.llm = llm
        return config

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> "ExecutorConfig":
        """YAML file (if given) first, then environment overrides."""
        base = cls.from_mapping(load_yaml_config(path, environ)) if path else cls()
        return cls.from_env(environ, base=base)


def _coerce(value: Any, annotation: Any, name: str) -> Any:
    type_name = annotation if isinstance(annotation, str) else getattr(annotation, "__name__", "")
    if type_name == "bool":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ValueError(f"Invalid boolean for '{name}': {value!r}")
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    return value


def load_yaml_config(path: str, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Read YAML config file with ${VAR} environment variable substitution."""
    environ = os.environ if environ is None else environ

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    def _replace_env(match):
        var_name = match.group(1)
        value = environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    return yaml.safe_load(resolved) or {}
