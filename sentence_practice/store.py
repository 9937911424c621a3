"""JSON file persistence for candidate input, keyed by sentence id.

One file holds every mode: {"dictation": {id: input}, "recitation": {...}}.
"""

import json
import logging
import os

from sentence_practice.constants import STORE_PATH
from sentence_practice.models import PracticeMode

logger = logging.getLogger(__name__)


def load_inputs(path: str) -> dict:
    """Read the store file.

    Returns an empty dict if the file is missing or malformed.
    """
    if not os.path.exists(path):
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError:
        logger.warning("Malformed input store %s, starting empty", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Unexpected input store layout in %s, starting empty", path)
        return {}
    return data


def save_inputs(path: str, data: dict) -> str:
    """Write the store file, creating its directory if needed. Returns the path."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


class InputStore:
    """get/set collaborator for one practice mode's saved input."""

    def __init__(self, path: str = STORE_PATH, mode: PracticeMode = PracticeMode.DICTATION):
        self.path = path
        self.mode = mode
        self._data = load_inputs(path)
        section = self._data.get(mode.value)
        if not isinstance(section, dict):
            if section is not None:
                logger.warning("Unexpected %s inputs in %s, starting empty", mode.value, path)
            section = self._data[mode.value] = {}
        self._inputs = section

    def get(self, sentence_id: str) -> str:
        return self._inputs.get(sentence_id, "")

    def set(self, sentence_id: str, value: str) -> None:
        if value.strip():
            self._inputs[sentence_id] = value
        else:
            self._inputs.pop(sentence_id, None)

    def delete(self, sentence_id: str) -> None:
        self._inputs.pop(sentence_id, None)

    def clear(self) -> None:
        self._inputs.clear()

    def all(self) -> dict[str, str]:
        return dict(self._inputs)

    def save(self) -> str:
        return save_inputs(self.path, self._data)
