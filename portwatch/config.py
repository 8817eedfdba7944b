"""Configuration loading for portwatch.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/portwatch/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interval": 1.0,
    "sampling": {
        "settle_ms": 200,
        "cpu_clamp": "cores",
    },
    "display": {
        "memory_scale_mb": 2000,
        "poll_slice_ms": 100,
    },
    "logging": {
        "level": "WARNING",
        "file": "",
    },
}

CPU_CLAMP_MODES = ("cores", "single")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_DEFAULT_PATH = Path.home() / ".config" / "portwatch" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _validate(config: dict[str, Any], source: Path | None) -> None:
    """Reject values the sampler and dashboard cannot work with."""
    where = f" in {source}" if source is not None else ""
    problems: list[str] = []

    clamp = config["sampling"].get("cpu_clamp")
    if clamp not in CPU_CLAMP_MODES:
        problems.append(
            f"sampling.cpu_clamp must be one of {', '.join(CPU_CLAMP_MODES)} (got {clamp!r})"
        )

    level = str(config["logging"].get("level", "")).upper()
    if level not in LOG_LEVELS:
        problems.append(f"logging.level must be one of {', '.join(LOG_LEVELS)} (got {level!r})")

    positive = {
        "interval": config.get("interval"),
        "sampling.settle_ms": config["sampling"].get("settle_ms"),
        "display.memory_scale_mb": config["display"].get("memory_scale_mb"),
        "display.poll_slice_ms": config["display"].get("poll_slice_ms"),
    }
    for name, value in positive.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            problems.append(f"{name} must be a positive number (got {value!r})")

    if problems:
        print(f"portwatch: invalid config{where}: {problems[0]}", file=sys.stderr)
        raise SystemExit(1)


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/portwatch/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist, can't be parsed, or
                    holds values that fail validation.
    """
    if path is not None:
        if not path.is_file():
            print(f"portwatch: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"portwatch: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        merged = _deep_merge(DEFAULT_CONFIG, user_config)
        _validate(merged, path)
        return merged

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError:
            print(
                f"portwatch: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )
        else:
            merged = _deep_merge(DEFAULT_CONFIG, user_config)
            _validate(merged, _DEFAULT_PATH)
            return merged

    return _deep_merge(DEFAULT_CONFIG, {})


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    sampling = DEFAULT_CONFIG["sampling"]
    display = DEFAULT_CONFIG["display"]
    logging_cfg = DEFAULT_CONFIG["logging"]
    lines = [
        "# portwatch configuration",
        "# Place this file at ~/.config/portwatch/config.toml",
        "",
        "# Seconds between dashboard refreshes in --watch mode",
        f"interval = {DEFAULT_CONFIG['interval']}",
        "",
        "[sampling]",
        "# Gap between the two CPU-time reads of one sample",
        f"settle_ms = {sampling['settle_ms']}",
        '# "cores" caps CPU at cores x 100%, "single" caps it at 100%',
        f'cpu_clamp = "{sampling["cpu_clamp"]}"',
        "",
        "[display]",
        "# Memory bar is full at this many MB (1 MB = 1,000,000 bytes)",
        f"memory_scale_mb = {display['memory_scale_mb']}",
        f"poll_slice_ms = {display['poll_slice_ms']}",
        "",
        "[logging]",
        f'level = "{logging_cfg["level"]}"',
        f'file = "{logging_cfg["file"]}"',
    ]
    return "\n".join(lines) + "\n"
