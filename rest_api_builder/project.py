"""Scaffolding of a documentation data directory."""

import logging
import os

from .config import BuilderConfig
from .store import DocumentStore, sample_endpoint
from .store.document_store import write_json_file

SAMPLE_FILENAME = "get-users"


def initialize_project(config: BuilderConfig, store: DocumentStore) -> None:
    """Create ``endpoints/`` and ``sockets/`` and seed a sample endpoint

    The sample is only written into an empty endpoints tree, so deleting
    it does not bring it back as long as other documents exist.
    """
    store.ensure_layout()
    os.makedirs(config.sockets_dir, exist_ok=True)

    sample_file = os.path.join(store.root, f"{SAMPLE_FILENAME}.json")
    if os.path.exists(sample_file) or store.list_all():
        return

    write_json_file(sample_file, sample_endpoint())
    logging.info(f"[RestApiBuilder] Created sample endpoint at {sample_file}")


__all__ = [
    "initialize_project",
]
