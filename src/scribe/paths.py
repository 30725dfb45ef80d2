from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_TASK_ROOT = "/tasks"


def task_root(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = (environ if environ is not None else os.environ).get("TASK_ROOT", "").strip()
    if env:
        return Path(env).expanduser().resolve()
    return Path(DEFAULT_TASK_ROOT)
