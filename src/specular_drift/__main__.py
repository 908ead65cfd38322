"""Module entrypoint for ``python -m specular_drift``."""

from __future__ import annotations

from specular_drift.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
