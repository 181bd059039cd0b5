import os
import sys
from dataclasses import dataclass
from pathlib import Path

import yaml

from e2e.runner import constants
from e2e.runner.utils import E2E_ROOT, PROJECT_ROOT

DEFAULT_CONFIG_FILE = E2E_ROOT / "config" / "e2e.yaml"
CONFIG_PLACEHOLDER = "{config}"


@dataclass(frozen=True)
class E2EConfig:
    e2e_test_paths: tuple[str, ...]
    install_command: tuple[str, ...]
    clean_command: tuple[str, ...]
    build_command: tuple[str, ...]
    serve_root: Path
    compiled_root: Path
    ready_timeout: float = constants.SERVER_READY_TIMEOUT_SECONDS

    def build_command_for(self, variant: str) -> list[str]:
        return [part.replace(CONFIG_PLACEHOLDER, variant) for part in self.build_command]


def resolve_config_path(env: dict[str, str] | None = None) -> Path:
    lookup = os.environ if env is None else env
    override = lookup.get(constants.ENV_CONFIG_FILE, "").strip()
    if not override:
        return DEFAULT_CONFIG_FILE
    path = Path(override)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def _require_string_list(data: dict, field: str) -> tuple[str, ...]:
    value = data.get(field)
    if value is None:
        raise ValueError(f"config field '{field}' is required")
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"config field '{field}' must be a list of strings")
    normalized = []
    for item in value:
        text = str(item).strip()
        if text == "":
            raise ValueError(f"config field '{field}' must not contain empty entries")
        normalized.append(text)
    if not normalized:
        raise ValueError(f"config field '{field}' must be non-empty")
    return tuple(normalized)


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"config section '{name}' must be a map")
    return value


def _resolve_dir(raw, default: str) -> Path:
    path = Path(str(raw).strip() if raw is not None else default)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def parse_e2e_config(data: dict) -> E2EConfig:
    if not isinstance(data, dict):
        raise ValueError("e2e config must be a map")

    install = _section(data, "install")
    build = _section(data, "build")
    server = _section(data, "server")

    build_command = _require_string_list(build, "dist")
    if not any(CONFIG_PLACEHOLDER in part for part in build_command):
        raise ValueError(f"config field 'dist' must reference {CONFIG_PLACEHOLDER}")

    ready_timeout = server.get("ready_timeout", constants.SERVER_READY_TIMEOUT_SECONDS)
    try:
        ready_timeout = float(ready_timeout)
    except (TypeError, ValueError):
        raise ValueError("config field 'ready_timeout' must be a number") from None
    if ready_timeout <= 0:
        raise ValueError("config field 'ready_timeout' must be positive")

    return E2EConfig(
        e2e_test_paths=_require_string_list(data, "e2e_test_paths"),
        install_command=_require_string_list(install, "command"),
        clean_command=_require_string_list(build, "clean"),
        build_command=build_command,
        serve_root=_resolve_dir(server.get("root"), "."),
        compiled_root=_resolve_dir(server.get("compiled_root"), "dist"),
        ready_timeout=ready_timeout,
    )


def load_e2e_config(path: Path | None = None) -> E2EConfig:
    config_file = path or resolve_config_path()
    if not config_file.exists():
        print(f"[ERROR] E2E config file not found: {config_file}")
        sys.exit(1)

    with open(config_file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return parse_e2e_config(data)
