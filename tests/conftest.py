from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT / "src", ROOT):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from routeclash.cancellation import cancellation_scope


@pytest.fixture(autouse=True)
def _cancellation_scope_fixture():
    with cancellation_scope(None):
        yield


@pytest.fixture
def write_payload(tmp_path: Path):
    import json

    def _write(containers: list[dict[str, object]], *, name: str = "payload.json", version: int = 1) -> Path:
        path = tmp_path / name
        path.write_text(
            json.dumps({"version": version, "containers": containers}, indent=2) + "\n",
            encoding="utf-8",
        )
        return path

    return _write
