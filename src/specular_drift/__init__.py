"""
specular-drift — drift detection and compliance reporting

File: src/specular_drift/__init__.py

Purpose
- Package root. Audits whether a locked specification, its execution plan,
  the project file tree, an API contract, and an execution policy remain
  mutually consistent.

Import boundary rules
- Must not have side effects at import time (no config loading, no logging init).
- Keep the public surface small; detectors live in ``specular_drift.drift``.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
