"""
rdf2html - Configuration loading and project initialization.

Configuration lives in a JSON file (``rdf2html.config.json``). It is
found by walking up from the working directory, the way git finds
``.git/``. Relative paths in the file are anchored at the directory that
contains it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError

logger = logging.getLogger("rdf2html.config")

__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "default_config",
    "find_config",
    "init_project",
    "load_config",
]

CONFIG_FILENAME = "rdf2html.config.json"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_config() -> dict[str, Any]:
    """Return the default configuration with relative paths."""
    return {
        "input_dir": "./",
        "output_dir": "./html",
        "include_patterns": ["*.ttl"],
        "exclude_patterns": [
            "**/.git/**",
            "**/__pycache__/**",
            "**/node_modules/**",
            "**/.venv/**",
            "**/venv/**",
        ],
        "workers": 4,
        "title": "Definitions",
        "index_title": "Index of RDF Files",
        "log_level": "INFO",
        "watch_debounce_seconds": 1.0,
    }


@dataclass(frozen=True)
class Config:
    """Resolved configuration: every path is absolute."""

    input_dir: Path
    output_dir: Path
    include_patterns: tuple[str, ...]
    exclude_patterns: tuple[str, ...]
    workers: int
    title: str
    index_title: str
    log_level: str
    watch_debounce_seconds: float
    config_path: Path | None = None


def find_config(start_path: str | Path) -> Path | None:
    """Walk up from *start_path* to find the nearest rdf2html.config.json.

    If *start_path* is a file, the search starts from its parent directory.
    Returns the absolute path to the config file, or ``None``.
    """
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent

    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def _anchor(raw: str, base_dir: Path) -> Path:
    p = Path(raw).expanduser()
    return p.resolve() if p.is_absolute() else (base_dir / p).resolve()


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    cwd: str | Path | None = None,
) -> Config:
    """
    Load configuration, layering defaults < config file < *overrides*.

    Without an explicit *config_path* the nearest config file above *cwd*
    is used; if there is none, defaults apply relative to *cwd*. Overrides
    with a ``None`` value are ignored, so argparse namespaces can be passed
    through as-is.
    """
    cwd = Path(cwd or Path.cwd()).resolve()
    data = default_config()

    if config_path is None:
        found = find_config(cwd)
    else:
        found = Path(config_path).resolve()
        if not found.is_file():
            raise ConfigError(f"config file not found: {found}")

    base_dir = cwd
    if found is not None:
        try:
            with open(found, encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"cannot read {found}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"{found}: top-level JSON value must be an object")
        unknown = sorted(set(loaded) - set(data))
        if unknown:
            logger.warning("Ignoring unknown config keys in %s: %s", found, ", ".join(unknown))
        data.update({k: v for k, v in loaded.items() if k in data})
        base_dir = found.parent
        logger.debug("Config loaded: %s", found)

    # CLI paths are relative to the working directory, not the config file
    cli = {k: v for k, v in (overrides or {}).items() if v is not None and k in data}
    for key in ("input_dir", "output_dir"):
        if key in cli:
            cli[key] = str(_anchor(cli[key], cwd))
    data.update(cli)

    level = str(data["log_level"]).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"invalid log_level {data['log_level']!r}")
    try:
        workers = int(data["workers"])
        debounce = float(data["watch_debounce_seconds"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid numeric setting: {exc}") from exc
    if workers < 1:
        raise ConfigError("workers must be at least 1")

    return Config(
        input_dir=_anchor(data["input_dir"], base_dir),
        output_dir=_anchor(data["output_dir"], base_dir),
        include_patterns=tuple(data["include_patterns"]),
        exclude_patterns=tuple(data["exclude_patterns"]),
        workers=workers,
        title=str(data["title"]),
        index_title=str(data["index_title"]),
        log_level=level,
        watch_debounce_seconds=debounce,
        config_path=found,
    )


def init_project(project_root: str | Path) -> Path:
    """Write a default config into *project_root*. Returns the config path.

    Also adds the output directory to ``.gitignore``. Safe to call if the
    project is already initialized: an existing config is left untouched.
    """
    root = Path(project_root).resolve()
    root.mkdir(parents=True, exist_ok=True)

    config_path = root / CONFIG_FILENAME
    if not config_path.exists():
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(default_config(), f, indent=2)
        logger.info("Created config: %s", config_path)

    output_dir = default_config()["output_dir"]
    _ensure_gitignore(root, output_dir.removeprefix("./").rstrip("/") + "/")
    return config_path


def _ensure_gitignore(project_root: Path, entry: str) -> None:
    """Add *entry* to .gitignore if not already present."""
    gitignore = project_root / ".gitignore"
    if gitignore.exists():
        content = gitignore.read_text(encoding="utf-8")
        if entry not in content.splitlines():
            with open(gitignore, "a", encoding="utf-8") as f:
                f.write(f"\n# rdf2html output\n{entry}\n")
    else:
        gitignore.write_text(f"# rdf2html output\n{entry}\n", encoding="utf-8")
