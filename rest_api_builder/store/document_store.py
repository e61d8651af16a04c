"""Endpoint document storage on top of a directory tree.

Every endpoint is one JSON file somewhere under the endpoints root. There
is no index: lookups by id walk the whole tree, which is fine for the
small, hand-edited trees this tool manages. Writes go through a temporary
file and ``os.replace`` so a crash never leaves half a document behind.
There is no locking, concurrent writers to the same file race and the
last one wins.
"""

import json
import logging
import os
import secrets
import stat
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .errors import Conflict, IOFailure, NotFound, ValidationError
from .models import (
    DERIVED_FIELDS,
    JSON_EXTENSION,
    default_endpoint_fields,
    generate_id,
    now_iso,
)


def read_json_file(file_path: str) -> Optional[Dict[str, Any]]:
    """Read a JSON object from disk

    Unreadable files, invalid JSON and non-object documents are logged and
    reported as ``None`` so that one broken file never blocks the rest of
    the tree.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logging.warning(f"[DocumentStore] Skipping unreadable file {file_path}: {e}")
        return None
    if not isinstance(data, dict):
        logging.warning(f"[DocumentStore] Skipping {file_path}: not a JSON object")
        return None
    return data


def write_json_file(file_path: str, data: Dict[str, Any]) -> None:
    """Write ``data`` as 2-space indented JSON, replacing the file atomically

    A new file gets the usual umask-derived mode, an existing one keeps
    its mode.

    Raises:
        IOFailure: If the directory or file cannot be written
    """
    directory = os.path.dirname(file_path)
    tmp_path = os.path.join(directory, f".{os.path.basename(file_path)}.{secrets.token_hex(6)}.tmp")
    created = False
    try:
        os.makedirs(directory, exist_ok=True)
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
        created = True
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            json.dump(data, tmp, indent=2, ensure_ascii=False)
        if os.path.exists(file_path):
            os.chmod(tmp_path, stat.S_IMODE(os.stat(file_path).st_mode))
        os.replace(tmp_path, file_path)
    except OSError as e:
        logging.error(f"[DocumentStore] Error writing file {file_path}: {e}")
        if created and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise IOFailure(f"Failed to write {os.path.basename(file_path)}") from e


def strip_derived(document: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``document`` without the read-time ``folder``/``filename`` keys"""
    return {key: value for key, value in document.items() if key not in DERIVED_FIELDS}


def _decode_json_text(value: Any) -> Any:
    # The UI edits these fields in text areas and may send them as JSON strings
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _merge_entry(current: Any, update: Dict[str, Any], decoded_key: str) -> Dict[str, Any]:
    merged = dict(current) if isinstance(current, dict) else {}
    merged.update(update)
    if decoded_key in update:
        merged[decoded_key] = _decode_json_text(update[decoded_key])
    return merged


def apply_patch(document: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Merge a partial document over an existing one

    Top-level keys replace the stored value, except for the nested fields
    the editor updates independently:

    - ``parameters`` is merged key by key, ``parameters.headers`` replaces
    - ``requestBody`` is merged key by key, ``requestBody.example`` replaces
    - ``responses`` is merged per status code and each status entry key by
      key, so ``responses.<code>.example`` can change alone. A ``None``
      entry removes that status code.

    ``parameters.headers`` and the ``example`` fields accept JSON text,
    which is decoded before storing.

    Args:
        document: Stored document (without derived fields)
        patch: Partial document sent by the client

    Returns:
        A new merged document; neither argument is modified
    """
    merged = dict(document)
    for key, value in patch.items():
        if key in DERIVED_FIELDS:
            continue
        current = merged.get(key)

        if key == "parameters" and isinstance(value, dict):
            parameters = _merge_entry(current, value, "headers")
            if "headers" in value and not isinstance(parameters["headers"], dict):
                parameters["headers"] = value["headers"]
            merged[key] = parameters
        elif key == "requestBody" and isinstance(value, dict):
            merged[key] = _merge_entry(current, value, "example")
        elif key == "responses" and isinstance(value, dict):
            responses = dict(current) if isinstance(current, dict) else {}
            for code, entry in value.items():
                code = str(code)
                if entry is None:
                    responses.pop(code, None)
                elif isinstance(entry, dict):
                    responses[code] = _merge_entry(responses.get(code), entry, "example")
                else:
                    responses[code] = entry
            merged[key] = responses
        else:
            merged[key] = value
    return merged


class DocumentStore:
    """Reads and writes endpoint documents under an endpoints root directory

    Args:
        endpoints_dir: Directory holding the endpoint tree
    """

    def __init__(self, endpoints_dir: str):
        self.root = os.path.abspath(endpoints_dir)

    def ensure_layout(self) -> None:
        """Create the endpoints root if it does not exist yet"""
        os.makedirs(self.root, exist_ok=True)

    def _resolve(self, *parts: str) -> str:
        """Absolute path for ``parts`` below the root

        Raises:
            ValidationError: If the result would leave the endpoints root
        """
        cleaned = [str(part).strip("/\\") for part in parts if part]
        path = os.path.normpath(os.path.join(self.root, *cleaned))
        if path != self.root and not path.startswith(self.root + os.sep):
            raise ValidationError("Path must stay inside the endpoints directory")
        return path

    def _relative(self, path: str) -> str:
        relative = os.path.relpath(path, self.root)
        if relative == os.curdir:
            return ""
        return relative.replace(os.sep, "/")

    def _iter_documents(
        self, dir_path: Optional[str] = None, folder: str = ""
    ) -> Iterator[Tuple[str, str, str, Dict[str, Any]]]:
        """Walk the tree, yielding ``(file_path, folder, filename, document)``

        Order is directory listing order. Unparseable files are skipped.
        """
        dir_path = dir_path or self.root
        if not os.path.isdir(dir_path):
            return
        try:
            entries = os.listdir(dir_path)
        except OSError as e:
            logging.warning(f"[DocumentStore] Cannot list {dir_path}: {e}")
            return

        for entry in entries:
            entry_path = os.path.join(dir_path, entry)
            if os.path.isdir(entry_path):
                child_folder = f"{folder}/{entry}" if folder else entry
                yield from self._iter_documents(entry_path, child_folder)
            elif entry.endswith(JSON_EXTENSION):
                document = read_json_file(entry_path)
                if document is not None:
                    yield entry_path, folder, entry[: -len(JSON_EXTENSION)], document

    @staticmethod
    def _with_location(document: Dict[str, Any], folder: str, filename: str) -> Dict[str, Any]:
        located = strip_derived(document)
        located["folder"] = folder
        located["filename"] = filename
        return located

    def list_all(self) -> List[Dict[str, Any]]:
        """All documents in the tree that carry an ``id``

        Returns:
            Documents with ``folder`` and ``filename`` attached, in
            traversal order
        """
        return [
            self._with_location(document, folder, filename)
            for _, folder, filename, document in self._iter_documents()
            if document.get("id")
        ]

    def find_by_id(self, endpoint_id: str) -> Dict[str, Any]:
        """Find a document by id

        Raises:
            NotFound: If no document in the tree has that id
        """
        if endpoint_id:
            for _, folder, filename, document in self._iter_documents():
                if document.get("id") == endpoint_id:
                    return self._with_location(document, folder, filename)
        raise NotFound("Endpoint not found")

    def create(self, folder: str, filename: str, fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Create a new document at ``<folder>/<filename>.json``

        Args:
            folder: Relative folder, ``""`` for the root
            filename: File name without extension
            fields: Caller supplied fields merged over the defaults

        Returns:
            The created document with ``folder`` and ``filename`` attached

        Raises:
            ValidationError: If filename is empty or not a plain name
            Conflict: If the file already exists
            IOFailure: If the file cannot be written
        """
        if not isinstance(filename, str) or not filename.strip():
            raise ValidationError("Filename is required")
        filename = filename.strip()
        if "/" in filename or "\\" in filename or filename in (os.curdir, os.pardir):
            raise ValidationError("Filename must not contain path separators")

        folder = folder or ""
        if not isinstance(folder, str):
            raise ValidationError("Folder must be a string")
        file_path = self._resolve(folder, f"{filename}{JSON_EXTENSION}")
        if os.path.exists(file_path):
            raise Conflict("Endpoint file already exists")

        document = default_endpoint_fields()
        document.update(strip_derived(fields or {}))
        timestamp = now_iso()
        document["id"] = generate_id()
        document["createdAt"] = timestamp
        document["updatedAt"] = timestamp

        write_json_file(file_path, document)
        relative_folder = self._relative(os.path.dirname(file_path))
        logging.info(f"[DocumentStore] Created endpoint '{document['id']}' at {self._relative(file_path)}")
        return self._with_location(document, relative_folder, filename)

    def update_by_id(self, endpoint_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``patch`` into the document with ``endpoint_id`` and rewrite it in place

        ``id`` and ``createdAt`` are preserved and ``updatedAt`` refreshed.
        See :func:`apply_patch` for the merge rules.

        Raises:
            NotFound: If no document has that id
            IOFailure: If the file cannot be written
        """
        for file_path, folder, filename, document in self._iter_documents():
            if not endpoint_id or document.get("id") != endpoint_id:
                continue

            stored = strip_derived(document)
            updated = apply_patch(stored, patch or {})
            updated["id"] = endpoint_id
            if "createdAt" in stored:
                updated["createdAt"] = stored["createdAt"]

            timestamp = now_iso()
            previous = stored.get("updatedAt")
            if isinstance(previous, str) and previous > timestamp:
                timestamp = previous
            updated["updatedAt"] = timestamp

            write_json_file(file_path, updated)
            logging.info(f"[DocumentStore] Updated endpoint '{endpoint_id}'")
            return self._with_location(updated, folder, filename)

        raise NotFound("Endpoint not found")

    def delete_by_id(self, endpoint_id: str) -> bool:
        """Delete the first document with ``endpoint_id``

        Raises:
            NotFound: If no document has that id
            IOFailure: If the file cannot be removed
        """
        for file_path, _, _, document in self._iter_documents():
            if not endpoint_id or document.get("id") != endpoint_id:
                continue
            try:
                os.remove(file_path)
            except OSError as e:
                logging.error(f"[DocumentStore] Error deleting {file_path}: {e}")
                raise IOFailure("Failed to delete endpoint") from e
            logging.info(f"[DocumentStore] Deleted endpoint '{endpoint_id}'")
            return True

        raise NotFound("Endpoint not found")

    def create_folder(self, parent: str, name: str) -> str:
        """Create the folder ``<parent>/<name>``, including missing parents

        Returns:
            The new folder's path relative to the endpoints root

        Raises:
            ValidationError: If name is empty
            Conflict: If the folder already exists
        """
        if not name or not isinstance(name, str) or not name.strip("/\\ "):
            raise ValidationError("Folder name is required")
        if parent and not isinstance(parent, str):
            raise ValidationError("Parent must be a string")

        folder_path = self._resolve(parent or "", name)
        if os.path.exists(folder_path):
            raise Conflict("Folder already exists")
        try:
            os.makedirs(folder_path)
        except OSError as e:
            logging.error(f"[DocumentStore] Error creating folder {folder_path}: {e}")
            raise IOFailure("Failed to create folder") from e

        relative = self._relative(folder_path)
        logging.info(f"[DocumentStore] Created folder '{relative}'")
        return relative


__all__ = [
    "DocumentStore",
    "apply_patch",
    "read_json_file",
    "write_json_file",
    "strip_derived",
]
