from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Sequence, Tuple

DEFAULT_BRIDGE_PORT = 19456
DEFAULT_HEALTH_TIMEOUT = 2.0
DEFAULT_PROXY_TIMEOUT = 30.0
DEFAULT_PACKAGE = "$TMP"
DEFAULT_LANGUAGE = "EN"
DEFAULT_ALREADY_EXISTS_MARKERS: Tuple[str, ...] = ("AlreadyExists", "already exists")
RESOLV_CONF_PATH = Path("/etc/resolv.conf")
ROUTE_TABLE_PATH = Path("/proc/net/route")


@lru_cache(maxsize=1)
def repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not path.exists():
        return values
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        values[key.strip()] = raw_value.strip().strip('"')
    return values


def load_env_values(env_files: Sequence[Path] | None = None) -> Dict[str, str]:
    # .env.example first so a concrete .env overrides placeholder values;
    # the process environment wins over both.
    candidates = env_files if env_files is not None else [repo_root() / ".env.example", repo_root() / ".env"]
    values: Dict[str, str] = {}
    for candidate in candidates:
        values.update(_parse_env_file(candidate))
    for key, value in os.environ.items():
        if isinstance(key, str) and isinstance(value, str):
            values[key] = value
    return values


def _float(values: Mapping[str, str], key: str, default: float) -> float:
    raw = (values.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


def _int(values: Mapping[str, str], key: str, default: int) -> int:
    raw = (values.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


def _markers(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return DEFAULT_ALREADY_EXISTS_MARKERS
    parts = tuple(part.strip() for part in raw.split(",") if part.strip())
    return parts or DEFAULT_ALREADY_EXISTS_MARKERS


@dataclass(frozen=True)
class AdtSettings:
    """Runtime knobs consumed by the bridge client and the reconciler."""

    bridge_url: str | None = None
    bridge_port: int = DEFAULT_BRIDGE_PORT
    health_timeout: float = DEFAULT_HEALTH_TIMEOUT
    proxy_timeout: float = DEFAULT_PROXY_TIMEOUT
    system_url: str = ""
    default_package: str = DEFAULT_PACKAGE
    default_language: str = DEFAULT_LANGUAGE
    already_exists_markers: Tuple[str, ...] = DEFAULT_ALREADY_EXISTS_MARKERS
    resolv_conf_path: Path = RESOLV_CONF_PATH
    route_table_path: Path = ROUTE_TABLE_PATH
    debug: bool = False
    log_file: Path | None = None

    @classmethod
    def from_env(cls, env_files: Sequence[Path] | None = None) -> AdtSettings:
        values = load_env_values(env_files)
        bridge_url = (values.get("BRIDGE_URL") or "").strip().rstrip("/") or None
        log_file = (values.get("SAP_ADT_LOG_FILE") or "").strip()
        return cls(
            bridge_url=bridge_url,
            bridge_port=_int(values, "SAP_ADT_BRIDGE_PORT", DEFAULT_BRIDGE_PORT),
            health_timeout=_float(values, "SAP_ADT_HEALTH_TIMEOUT", DEFAULT_HEALTH_TIMEOUT),
            proxy_timeout=_float(values, "SAP_ADT_PROXY_TIMEOUT", DEFAULT_PROXY_TIMEOUT),
            system_url=(values.get("SAP_ADT_URL") or "").strip(),
            default_package=(values.get("SAP_ADT_DEFAULT_PACKAGE") or DEFAULT_PACKAGE).strip().upper(),
            default_language=(values.get("SAP_ADT_DEFAULT_LANGUAGE") or DEFAULT_LANGUAGE).strip().upper(),
            already_exists_markers=_markers(values.get("SAP_ADT_ALREADY_EXISTS_MARKERS")),
            debug=is_truthy(values.get("SAP_ADT_DEBUG")),
            log_file=Path(log_file).expanduser() if log_file else None,
        )
