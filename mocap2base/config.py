"""CLI config and defaults."""

from __future__ import annotations

import argparse
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass(frozen=True)
class AppConfig:
    base_id: int = 0
    base_qx: float = -0.7071068
    base_qy: float = 0.0
    base_qz: float = 0.0
    base_qw: float = 0.7071068
    initial_offset_x: float = 0.0
    initial_offset_y: float = -0.19
    initial_offset_z: float = 0.0
    sub_topic: str = "rigid_body_topic"
    pub_topic: str = "rigid_body_baseframe_topic"
    sub_host: str = "127.0.0.1"
    sub_port: int = 24601
    pub_host: str = "127.0.0.1"
    pub_port: int = 24602
    poll_ms: int = 2
    log_level: str = "info"
    config: str = ""


_APP_CONFIG_FIELDS = {f.name for f in fields(AppConfig)}
_INT_FIELDS = {
    "base_id",
    "sub_port",
    "pub_port",
    "poll_ms",
}
_FLOAT_FIELDS = {
    "base_qx",
    "base_qy",
    "base_qz",
    "base_qw",
    "initial_offset_x",
    "initial_offset_y",
    "initial_offset_z",
}
_STRING_FIELDS = {
    "sub_topic",
    "pub_topic",
    "sub_host",
    "pub_host",
    "log_level",
    "config",
}
_LOG_LEVELS = ("debug", "info", "warning", "error")

# Parameters re-read for every batch; the rest are fixed at startup.
RUNTIME_PARAMETERS = (
    "base_id",
    "base_qx",
    "base_qy",
    "base_qz",
    "base_qw",
    "initial_offset_x",
    "initial_offset_y",
    "initial_offset_z",
    "sub_topic",
    "pub_topic",
)


def coerce_config_value(key: str, value: Any) -> Any:
    try:
        if key in _INT_FIELDS:
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError(value)
            return int(value)
        if key in _FLOAT_FIELDS:
            if isinstance(value, bool):
                raise ValueError(value)
            return float(value)
        if key in _STRING_FIELDS:
            return "" if value is None else str(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid value for config key '{key}': {value!r}") from exc
    raise ValueError(f"unsupported config key '{key}'")


def _normalize_config_key(raw_key: Any) -> str:
    if not isinstance(raw_key, str):
        raise ValueError(f"config key must be string, got {type(raw_key).__name__}")
    key = raw_key.strip().replace("-", "_")
    if not key:
        raise ValueError("config key cannot be empty")
    return key


def load_yaml_config(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ValueError(f"--config file not found: {p}")
    if not p.is_file():
        raise ValueError(f"--config must point to a file: {p}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"failed to read --config file {p}: {exc}") from exc
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to parse YAML config {p}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"--config root must be a mapping/object, got {type(loaded).__name__}")

    normalized: dict[str, Any] = {}
    for raw_key, raw_value in loaded.items():
        key = _normalize_config_key(raw_key)
        if key not in _APP_CONFIG_FIELDS or key == "config":
            raise ValueError(f"unknown config key in {p}: {raw_key!r}")
        normalized[key] = coerce_config_value(key, raw_value)
    return normalized


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Re-express motion-capture rigid body poses in the robot base frame."
    )
    ap.add_argument(
        "--config",
        type=str,
        default="",
        help="YAML config file path. CLI args override YAML values; "
        "calibration and topics are re-read when the file changes.",
    )
    ap.add_argument(
        "--base-id",
        type=int,
        default=0,
        help="Capture-system id of the rigid body mounted on the robot base.",
    )
    ap.add_argument("--base-qx", type=float, default=-0.7071068, help="Calibration quaternion x.")
    ap.add_argument("--base-qy", type=float, default=0.0, help="Calibration quaternion y.")
    ap.add_argument("--base-qz", type=float, default=0.0, help="Calibration quaternion z.")
    ap.add_argument("--base-qw", type=float, default=0.7071068, help="Calibration quaternion w.")
    ap.add_argument(
        "--initial-offset-x",
        type=float,
        default=0.0,
        help="Base marker -> robot base offset x in meters (world frame).",
    )
    ap.add_argument(
        "--initial-offset-y",
        type=float,
        default=-0.19,
        help="Base marker -> robot base offset y in meters (world frame).",
    )
    ap.add_argument(
        "--initial-offset-z",
        type=float,
        default=0.0,
        help="Base marker -> robot base offset z in meters (world frame).",
    )
    ap.add_argument(
        "--sub-topic",
        type=str,
        default="rigid_body_topic",
        help="Topic of inbound world-frame rigid body batches.",
    )
    ap.add_argument(
        "--pub-topic",
        type=str,
        default="rigid_body_baseframe_topic",
        help="Topic of outbound base-frame rigid body batches.",
    )
    ap.add_argument("--sub-host", type=str, default="127.0.0.1", help="UDP bind host for inbound batches.")
    ap.add_argument("--sub-port", type=int, default=24601, help="UDP bind port for inbound batches.")
    ap.add_argument("--pub-host", type=str, default="127.0.0.1", help="UDP destination host for outbound batches.")
    ap.add_argument("--pub-port", type=int, default=24602, help="UDP destination port for outbound batches.")
    ap.add_argument(
        "--poll-ms",
        type=int,
        default=2,
        help="Sleep between socket polls in milliseconds.",
    )
    ap.add_argument(
        "--log-level",
        choices=list(_LOG_LEVELS),
        default="info",
        help="Global log level.",
    )
    return ap


def _check_port(flag: str, port: int) -> None:
    if not (1 <= port <= 65535):
        raise ValueError(f"{flag} must be in [1,65535], got {port}")


def validate_config(cfg: AppConfig) -> None:
    if cfg.base_id < 0:
        raise ValueError(f"--base-id must be >= 0, got {cfg.base_id}")
    for name in ("base_qx", "base_qy", "base_qz", "base_qw"):
        if not math.isfinite(getattr(cfg, name)):
            raise ValueError(f"--{name.replace('_', '-')} must be a finite number")
    for name in ("initial_offset_x", "initial_offset_y", "initial_offset_z"):
        if not math.isfinite(getattr(cfg, name)):
            raise ValueError(f"--{name.replace('_', '-')} must be a finite number")
    if not cfg.sub_topic.strip():
        raise ValueError("--sub-topic must be non-empty")
    if not cfg.pub_topic.strip():
        raise ValueError("--pub-topic must be non-empty")
    if not cfg.sub_host.strip():
        raise ValueError("--sub-host must be non-empty")
    if not cfg.pub_host.strip():
        raise ValueError("--pub-host must be non-empty")
    _check_port("--sub-port", cfg.sub_port)
    _check_port("--pub-port", cfg.pub_port)
    if cfg.poll_ms <= 0:
        raise ValueError(f"--poll-ms must be > 0, got {cfg.poll_ms}")
    if cfg.log_level not in _LOG_LEVELS:
        raise ValueError(f"--log-level must be one of debug|info|warning|error, got {cfg.log_level}")


def parse_args(argv=None) -> AppConfig:
    bootstrap = argparse.ArgumentParser(add_help=False)
    bootstrap.add_argument("--config", type=str, default="")
    bootstrap_ns, _ = bootstrap.parse_known_args(argv)

    yaml_cfg: dict[str, Any] = {}
    yaml_error: Optional[str] = None
    if bootstrap_ns.config:
        try:
            yaml_cfg = load_yaml_config(bootstrap_ns.config)
        except ValueError as exc:
            yaml_error = str(exc)

    ap = build_arg_parser()
    if yaml_error is not None:
        ap.error(yaml_error)
    if yaml_cfg:
        ap.set_defaults(**yaml_cfg)
    args = ap.parse_args(argv)

    cfg = AppConfig(**{name: getattr(args, name) for name in _APP_CONFIG_FIELDS})
    try:
        validate_config(cfg)
    except ValueError as exc:
        ap.error(str(exc))
    return cfg
