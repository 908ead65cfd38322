"""Read-only loaders for the documents an audit consumes."""

from specular_drift.spec_ingestion.loader import (
    SpecIngestError,
    load_plan,
    load_policy,
    load_product_spec,
    load_run_manifest,
    load_run_manifests,
    load_spec_lock,
    load_task_images,
    read_document,
)

__all__ = [
    "SpecIngestError",
    "load_plan",
    "load_policy",
    "load_product_spec",
    "load_run_manifest",
    "load_run_manifests",
    "load_spec_lock",
    "load_task_images",
    "read_document",
]
