from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ch.logging.jsonl import to_jsonable


def write_json_deterministic(path: Path, payload: dict[str, Any]) -> None:
    """
    Write JSON with:
      - sorted keys
      - indent=2
      - UTF-8
      - newline at EOF
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(to_jsonable(payload), handle, indent=2, sort_keys=True)
        handle.write("\n")
