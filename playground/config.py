"""Configuration dataclasses and YAML loading for the playground core."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_FILE = Path(".playground") / "config.yml"

TECH_STACKS = ("react", "react-typescript", "vue", "angular")


@dataclass
class PropagationConfig:
    """Which kinds forward or iterate their context data."""

    pass_through_kinds: List[str] = field(
        default_factory=lambda: ["Card", "Flexbox", "Stack", "ScrollableContainer", "Section"]
    )
    iteration_kinds: List[str] = field(default_factory=lambda: ["MapComponent"])
    inherit_fallback: bool = True  # Child without data inherits the parent's data verbatim


@dataclass
class IterationConfig:
    """Map expansion settings."""

    default_empty_text: str = "No items to display"
    id_separator: str = "-"  # Clone ids are "{template-id}{sep}{index}"


@dataclass
class DisplayConfig:
    verbose: bool = False


@dataclass
class PersistenceConfig:
    snapshot_file: str = ".playground/snapshot.json"


@dataclass
class PlaygroundConfig:
    """Complete playground configuration."""

    propagation: PropagationConfig = field(default_factory=PropagationConfig)
    iteration: IterationConfig = field(default_factory=IterationConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    tech_stack: str = "react"


def _section(data: Dict[str, Any], name: str, file_path: Optional[Path]) -> Dict[str, Any]:
    """Fetch a nested mapping, treating a missing or null section as empty."""
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping", file_path)
    return value


def _expect(value: Any, expected: Union[type, tuple], key: str, file_path: Optional[Path]) -> Any:
    # bool is an int subclass; reject it where a number or string is wanted
    if isinstance(value, bool) and expected is not bool:
        raise ConfigError(f"'{key}' must be {_type_label(expected)}, got bool", file_path)
    if not isinstance(value, expected):
        raise ConfigError(
            f"'{key}' must be {_type_label(expected)}, got {type(value).__name__}", file_path
        )
    return value


def _type_label(expected: Union[type, tuple]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _string_list(value: Any, key: str, file_path: Optional[Path]) -> List[str]:
    if isinstance(value, str):
        return [value]
    _expect(value, list, key, file_path)
    for item in value:
        _expect(item, str, key, file_path)
    return list(value)


def parse_config(data: Optional[Dict[str, Any]], file_path: Optional[Path] = None) -> PlaygroundConfig:
    """Build a PlaygroundConfig from a parsed YAML document.

    Raises:
        ConfigError: If the document or a field has the wrong shape
    """
    if data is None:
        return PlaygroundConfig()
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a YAML dictionary", file_path)

    defaults = PlaygroundConfig()

    propagation_data = _section(data, "propagation", file_path)
    propagation_config = PropagationConfig(
        pass_through_kinds=_string_list(
            propagation_data.get("pass_through_kinds", defaults.propagation.pass_through_kinds),
            "propagation.pass_through_kinds",
            file_path,
        ),
        iteration_kinds=_string_list(
            propagation_data.get("iteration_kinds", defaults.propagation.iteration_kinds),
            "propagation.iteration_kinds",
            file_path,
        ),
        inherit_fallback=_expect(
            propagation_data.get("inherit_fallback", True),
            bool,
            "propagation.inherit_fallback",
            file_path,
        ),
    )

    iteration_data = _section(data, "iteration", file_path)
    iteration_config = IterationConfig(
        default_empty_text=_expect(
            iteration_data.get("default_empty_text", defaults.iteration.default_empty_text),
            str,
            "iteration.default_empty_text",
            file_path,
        ),
        id_separator=_expect(
            iteration_data.get("id_separator", "-"), str, "iteration.id_separator", file_path
        ),
    )

    display_data = _section(data, "display", file_path)
    display_config = DisplayConfig(
        verbose=_expect(display_data.get("verbose", False), bool, "display.verbose", file_path),
    )

    persistence_data = _section(data, "persistence", file_path)
    persistence_config = PersistenceConfig(
        snapshot_file=_expect(
            persistence_data.get("snapshot_file", defaults.persistence.snapshot_file),
            str,
            "persistence.snapshot_file",
            file_path,
        ),
    )

    tech_stack = data.get("tech_stack", "react")
    if tech_stack not in TECH_STACKS:
        raise ConfigError(
            f"Invalid tech_stack '{tech_stack}'. Must be one of: {', '.join(TECH_STACKS)}",
            file_path,
        )

    return PlaygroundConfig(
        propagation=propagation_config,
        iteration=iteration_config,
        display=display_config,
        persistence=persistence_config,
        tech_stack=tech_stack,
    )


def load_config(config_path: Optional[Path] = None) -> PlaygroundConfig:
    """Load and parse the playground YAML configuration.

    Args:
        config_path: Explicit config file. If None, ``.playground/config.yml``
                     is used when it exists.

    Returns:
        The parsed configuration, or defaults when no file exists

    Raises:
        ConfigError: If the file is not valid YAML or has the wrong shape
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_FILE
    if not path.exists():
        return PlaygroundConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", path)
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config is not valid UTF-8: {e}", path)
    except OSError as e:
        raise ConfigError(f"Cannot read config: {e}", path)

    return parse_config(data, path)
