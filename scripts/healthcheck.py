"""Container healthcheck: verify the HTTP /health endpoint.

Uses stdlib only. Exit code 0 indicates healthy; with ``--require-ready`` the
schema must also have finished loading.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Final
from urllib.request import Request, urlopen

URL: Final[str] = os.getenv("NL2SQL_SEQUELIZE_HEALTH_URL", "http://127.0.0.1:8000/health")


def main(argv: list[str]) -> int:
    require_ready = "--require-ready" in argv
    try:
        req = Request(URL, headers={"User-Agent": "nl2sql-sequelize/healthcheck"})  # noqa: S310
        with urlopen(req, timeout=4) as resp:  # noqa: S310 - configured host/http
            if resp.status != 200:
                print(f"unexpected status: {resp.status}", file=sys.stderr)
                return 1
            data = json.loads(resp.read().decode("utf-8"))
    except Exception as exc:  # noqa: BLE001
        print(f"healthcheck error: {exc}", file=sys.stderr)
        return 1

    if data.get("status") != "healthy":
        print(f"payload not healthy: {data}", file=sys.stderr)
        return 1
    if require_ready and data.get("schema_phase") != "READY":
        print(f"schema not ready: {data.get('schema_phase')}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - used by Docker
    raise SystemExit(main(sys.argv[1:]))
