"""Runtime parameters read by the node for every batch.

Values are seeded from the startup config and can be changed while running,
either programmatically with set()/update() or by editing the watched YAML
file. Nothing here caches a calibration: base_calibration() builds a new one
from the current values on every call.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping, Optional

import numpy as np

from ..config import (
    RUNTIME_PARAMETERS,
    AppConfig,
    coerce_config_value,
    load_yaml_config,
    validate_config,
)
from .frame_transformer import BaseCalibration

logger = logging.getLogger(__name__)


class ParameterStore:
    def __init__(self, cfg: AppConfig | None = None, watch_path: str = ""):
        cfg = cfg or AppConfig()
        self._cfg = cfg
        self._values: dict[str, Any] = {name: getattr(cfg, name) for name in RUNTIME_PARAMETERS}
        self._watch_path: Optional[Path] = Path(watch_path) if watch_path else None
        self._watch_mtime: Optional[float] = self._current_mtime()

    def names(self) -> tuple[str, ...]:
        return tuple(self._values)

    def get(self, name: str) -> Any:
        if name not in self._values:
            raise KeyError(f"undeclared parameter '{name}'")
        return self._values[name]

    def set(self, name: str, value: Any) -> None:
        self.update({name: value})

    def update(self, values: Mapping[str, Any]) -> bool:
        """Apply several values at once.

        All values are coerced and the merged set is checked with the startup
        validation before any is stored; ValueError leaves the store unchanged.
        """
        coerced = {}
        for name, value in values.items():
            if name not in self._values:
                raise KeyError(f"undeclared parameter '{name}'")
            coerced[name] = coerce_config_value(name, value)
        validate_config(replace(self._cfg, **{**self._values, **coerced}))
        changed = any(self._values[k] != v for k, v in coerced.items())
        self._values.update(coerced)
        return changed

    def base_calibration(self) -> BaseCalibration:
        v = self._values
        return BaseCalibration(
            quaternion=np.array(
                [v["base_qx"], v["base_qy"], v["base_qz"], v["base_qw"]], dtype=np.float64
            ),
            offset=np.array(
                [v["initial_offset_x"], v["initial_offset_y"], v["initial_offset_z"]],
                dtype=np.float64,
            ),
            base_id=int(v["base_id"]),
        )

    def _current_mtime(self) -> Optional[float]:
        if self._watch_path is None:
            return None
        try:
            return self._watch_path.stat().st_mtime
        except OSError:
            return None

    def reload_if_changed(self) -> bool:
        """Re-read the watched file when its mtime moved.

        Startup-only keys in the file are ignored. A file that fails to parse
        leaves the current values in place.
        """
        mtime = self._current_mtime()
        if mtime is None or mtime == self._watch_mtime:
            return False
        self._watch_mtime = mtime

        try:
            loaded = load_yaml_config(str(self._watch_path))
            changed = self.update({k: v for k, v in loaded.items() if k in self._values})
        except (KeyError, ValueError):
            logger.exception("[PARAMS] failed to reload %s, keeping previous values", self._watch_path)
            return False

        if changed:
            logger.info(
                "[PARAMS] reloaded %s: base_id=%d q=[%.7f, %.7f, %.7f, %.7f] offset=[%.3f, %.3f, %.3f]",
                self._watch_path,
                self._values["base_id"],
                self._values["base_qx"],
                self._values["base_qy"],
                self._values["base_qz"],
                self._values["base_qw"],
                self._values["initial_offset_x"],
                self._values["initial_offset_y"],
                self._values["initial_offset_z"],
            )
        return changed
