"""
Atomic JSON file operations.

Result files are never left half-written: data is dumped to a temporary file
in the target directory, re-read to confirm it is valid JSON, then moved into
place.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any


def atomic_json_save(data: Any, output_file: str | Path) -> Path:
    """
    Save JSON data to file using an atomic move.

    Args:
        data: JSON-serializable object
        output_file: Target file path

    Returns:
        Path of the written file

    Raises:
        OSError: If the file cannot be written
        TypeError: If data is not JSON-serializable
    """
    target = Path(output_file)
    target.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path = tempfile.mkstemp(suffix=".json", dir=target.parent, text=True)

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        with open(temp_path, encoding="utf-8") as f:
            json.load(f)

        shutil.move(temp_path, target)
        return target

    except Exception:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise
