#!/usr/bin/env python3
"""
Flat JSON file persistence for the workflow stores.
The whole file is read on load and rewritten on every save. Writes within
the process are serialized and land through a temp file, so a reader never
sees half a document. Nothing is locked across processes.
"""

import json
import logging
import os
import threading

logger = logging.getLogger(__name__)

_write_lock = threading.Lock()


def load_json(path, default):
    """Read a JSON document, returning `default` if the file is missing or unreadable."""
    if not os.path.exists(path):
        return default
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"[Store] Could not read {path}, starting empty: {e}")
        return default


def save_json(path, data):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = f'{path}.tmp'
    with _write_lock:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
