from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "blueprint_ls.toml"

DEFAULT_REQUEST_TIMEOUT_MS = 5000
DEFAULT_COLUMN_LEEWAY = 2
DEFAULT_MAX_NUMBER_OF_PROBLEMS = 100

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _as_positive_int(value: TomlValue, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


@dataclass(frozen=True)
class ServerConfig:
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    # 0 leaves the number of deadline checks per request unbounded.
    request_check_budget: int = 0
    column_leeway: int = DEFAULT_COLUMN_LEEWAY
    enable_key_completions_jsonc: bool = False
    max_number_of_problems: int = DEFAULT_MAX_NUMBER_OF_PROBLEMS
    show_any_type_warnings: bool = False


def server_config(root: Path | None = None, config_path: Path | None = None) -> ServerConfig:
    data = load_config(root=root, config_path=config_path)
    server = _section(data, "server")
    completion = _section(data, "completion")
    diagnostics = _section(data, "diagnostics")
    leeway = completion.get("column_leeway", DEFAULT_COLUMN_LEEWAY)
    return ServerConfig(
        request_timeout_ms=_as_positive_int(
            server.get("request_timeout_ms"), DEFAULT_REQUEST_TIMEOUT_MS
        ),
        request_check_budget=_as_positive_int(server.get("request_check_budget"), 0),
        column_leeway=(
            leeway
            if isinstance(leeway, int) and not isinstance(leeway, bool) and leeway >= 0
            else DEFAULT_COLUMN_LEEWAY
        ),
        enable_key_completions_jsonc=_as_bool(
            completion.get("enable_key_completions_jsonc")
        ),
        max_number_of_problems=_as_positive_int(
            diagnostics.get("max_number_of_problems"), DEFAULT_MAX_NUMBER_OF_PROBLEMS
        ),
        show_any_type_warnings=_as_bool(diagnostics.get("show_any_type_warnings")),
    )
