"""
Interpreter configuration.

Settings come from a YAML file:

    module_paths: [".", "lib"]
    module_suffix: ".toy"
    encoding: utf-8
    log_level: INFO
    recursion_limit: 20000
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

logger = logging.getLogger(__name__)


@dataclass
class InterpreterConfig:
    """Settings for one Interpreter."""
    module_paths: List[str] = field(default_factory=lambda: ["."])
    module_suffix: str = ".toy"
    encoding: str = "utf-8"
    log_level: str = "WARNING"
    recursion_limit: int = 10000

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "InterpreterConfig":
        """Build a config from a dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown configuration keys: {', '.join(unknown)}")

        values: Dict[str, Any] = dict(data)
        if "module_paths" in values:
            paths = values["module_paths"]
            if isinstance(paths, str):
                paths = [paths]
            if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
                raise ValueError("module_paths must be a list of directories")
            values["module_paths"] = list(paths)
        if "recursion_limit" in values:
            limit = values["recursion_limit"]
            if not isinstance(limit, int) or isinstance(limit, bool) or limit < 100:
                raise ValueError("recursion_limit must be an integer of at least 100")
        if "log_level" in values:
            level = str(values["log_level"]).upper()
            if not isinstance(logging.getLevelName(level), int):
                raise ValueError(f"unknown log level: {values['log_level']}")
            values["log_level"] = level
        return cls(**values)


def load_config(path: Path | str) -> InterpreterConfig:
    """
    Load an InterpreterConfig from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a mapping or has unknown keys
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config must be a mapping: {config_path}")
    logger.debug("loaded config from %s", config_path)
    return InterpreterConfig.from_mapping(data)
