"""Folder/endpoint tree of the endpoints directory, as rendered by the UI."""

import logging
import os
from typing import Any, Dict, List

from .document_store import read_json_file
from .models import JSON_EXTENSION


def node_sort_key(node: Dict[str, Any]):
    """Folders first, then names case-insensitively, ties broken by exact name"""
    name = node["name"]
    return (0 if node["type"] == "folder" else 1, name.casefold(), name)


def build_structure(root: str, relative_path: str = "") -> List[Dict[str, Any]]:
    """Build the sorted tree below ``root``

    Each level lists folders first, then endpoints, each group ordered by
    name. Files that do not end in ``.json`` are ignored and a missing root
    gives an empty list.

    Args:
        root: Directory to walk
        relative_path: Path of ``root`` relative to the endpoints root

    Returns:
        List of ``{"type": "folder", "name", "path", "children"}`` and
        ``{"type": "endpoint", "name", "path", "data"}`` nodes
    """
    items: List[Dict[str, Any]] = []
    if not os.path.isdir(root):
        return items

    try:
        entries = os.listdir(root)
    except OSError as e:
        logging.warning(f"[Structure] Cannot list {root}: {e}")
        return items

    for entry in entries:
        entry_path = os.path.join(root, entry)
        item_path = f"{relative_path}/{entry}" if relative_path else entry

        if os.path.isdir(entry_path):
            items.append({
                "type": "folder",
                "name": entry,
                "path": item_path,
                "children": build_structure(entry_path, item_path),
            })
        elif entry.endswith(JSON_EXTENSION):
            document = read_json_file(entry_path)
            items.append({
                "type": "endpoint",
                "name": entry[: -len(JSON_EXTENSION)],
                "path": item_path,
                "data": document if document is not None else {},
            })

    items.sort(key=node_sort_key)
    return items


__all__ = [
    "build_structure",
    "node_sort_key",
]
