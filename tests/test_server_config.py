from __future__ import annotations

import textwrap
from pathlib import Path

from blueprint_ls.config import DEFAULT_CONFIG_NAME, ServerConfig, load_config, server_config


def test_server_config_reads_toml(tmp_path: Path) -> None:
    (tmp_path / DEFAULT_CONFIG_NAME).write_text(
        textwrap.dedent(
            """
            [server]
            request_timeout_ms = 750
            request_check_budget = 5000

            [completion]
            column_leeway = 0
            enable_key_completions_jsonc = true

            [diagnostics]
            max_number_of_problems = 12
            show_any_type_warnings = "yes"
            """
        ).strip()
        + "\n"
    )
    config = server_config(root=tmp_path)
    assert config == ServerConfig(
        request_timeout_ms=750,
        request_check_budget=5000,
        column_leeway=0,
        enable_key_completions_jsonc=True,
        max_number_of_problems=12,
        show_any_type_warnings=True,
    )


def test_server_config_defaults_when_missing(tmp_path: Path) -> None:
    assert load_config(root=tmp_path) == {}
    assert server_config(root=tmp_path) == ServerConfig()


def test_server_config_ignores_invalid_values(tmp_path: Path) -> None:
    config_path = tmp_path / "custom.toml"
    config_path.write_text(
        "[server]\nrequest_timeout_ms = -5\n"
        "[completion]\ncolumn_leeway = true\n"
        "[diagnostics]\nmax_number_of_problems = \"many\"\n"
    )
    assert server_config(root=tmp_path, config_path=config_path) == ServerConfig()


def test_server_config_tolerates_malformed_toml(tmp_path: Path) -> None:
    (tmp_path / DEFAULT_CONFIG_NAME).write_text("[server\n")
    assert server_config(root=tmp_path) == ServerConfig()
