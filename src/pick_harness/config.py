"""Configuration for pick-harness.

Config discovery (first match wins):
  1. ``--config`` flag
  2. ``./pick_harness.yaml``
  3. ``~/.config/pick-harness/config.yaml``
  4. Built-in defaults

Example::

    service:
      url: http://localhost:11434
      timeout: 120
    chat:
      model: llama3
      retries: 3
    algorithm: fewshot
    runs: 1
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from pick_harness.llm.engine import DEFAULT_MODEL, DEFAULT_RETRIES

_logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config data structures
# ---------------------------------------------------------------------------

@dataclass
class ServiceSpec:
    """Where the Ollama server lives."""

    url: str = "http://localhost:11434"
    timeout: float = 120


@dataclass
class ChatSpec:
    """Defaults for every chat call."""

    model: str = DEFAULT_MODEL
    retries: int = DEFAULT_RETRIES


@dataclass
class HarnessConfig:
    """Top-level config."""

    service: ServiceSpec = field(default_factory=ServiceSpec)
    chat: ChatSpec = field(default_factory=ChatSpec)

    # Algorithm used by ``ask`` and ``bench``
    algorithm: str = "fewshot"

    # Bench repetitions per case
    runs: int = 1


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./pick_harness.yaml"),
    Path.home() / ".config" / "pick-harness" / "config.yaml",
]


def _parse_section(cls: type, raw: dict[str, Any] | None) -> Any:
    if not raw:
        return cls()
    known = {k: v for k, v in raw.items() if k in cls.__dataclass_fields__}
    unknown = set(raw) - set(known)
    if unknown:
        _logger.warning("Ignoring unknown %s keys: %s",
                        cls.__name__, ", ".join(sorted(unknown)))
    return cls(**known)


def load_config(path: str | Path | None = None) -> HarnessConfig:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            return HarnessConfig()
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        _logger.info("No config file found, using defaults")
        return HarnessConfig()

    _logger.info("Loading config from %s", config_path)
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return HarnessConfig(
        service=_parse_section(ServiceSpec, raw.get("service")),
        chat=_parse_section(ChatSpec, raw.get("chat")),
        algorithm=raw.get("algorithm", "fewshot"),
        runs=raw.get("runs", 1),
    )
