# storage.py
import json
import logging
from pathlib import Path

from menu_selectors import DATA_DIR

logger = logging.getLogger(__name__)


class JsonFileSink:
    """
    Writes pretty-printed UTF-8 JSON documents under a root directory,
    creating intermediate directories and overwriting existing files.
    """

    def __init__(self, root=DATA_DIR):
        self.root = Path(root)

    def write(self, path_components, filename, data):
        directory = self.root.joinpath(*path_components)
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / filename
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved {file_path}")
        return file_path
