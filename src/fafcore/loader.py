"""
fafcore Document Loading

Reads ``.faf`` context files from disk.  A ``.faf`` file is YAML (JSON is
accepted too, being a YAML subset) and is parsed with ``yaml.safe_load``,
so no arbitrary objects are ever constructed.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from fafcore.exceptions import DocumentLoadError

logger = logging.getLogger(__name__)


def parse_document(text: str, source: str = "<string>") -> Any:
    """Parse YAML *text* into a document; an empty file yields ``{}``.

    Raises:
        DocumentLoadError: If the text is not valid YAML.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DocumentLoadError(f"Invalid YAML in {source}: {exc}") from exc
    return {} if data is None else data


def load_document(path: str | Path) -> Any:
    """Read and parse the context document at *path*.

    The result is whatever the file holds; the scoring core copes with
    non-mapping documents by reporting them as diagnostics.

    Raises:
        DocumentLoadError: If the file is missing, unreadable or not YAML.
    """
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DocumentLoadError(
            f"Context file not found: {file_path}. Run 'faf init' to create one."
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentLoadError(f"Cannot read {file_path}: {exc}") from exc

    logger.debug("Loaded %d bytes from %s", len(text), file_path)
    return parse_document(text, source=str(file_path))
