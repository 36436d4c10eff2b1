"""Durable slot for the last selected team.

Stored in a local JSON file so the selection survives restarts.
"""

import json
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

SELECTION_KEY = "selectedTeamId"


class TeamSelectionStore:

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to read team selection: {e}")
            return {}

    def read(self) -> Optional[str]:
        return self._load().get(SELECTION_KEY) or None

    def write(self, team_id: Optional[str]) -> None:
        data = self._load()
        if team_id:
            data[SELECTION_KEY] = team_id
        else:
            data.pop(SELECTION_KEY, None)

        directory = os.path.dirname(self.path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
