"""
JSON file state store.

Each network is stored as {STATE_DIR}/{net_id}.json, with the id
percent-escaped so that distinct ids never share a file. Writes go to a
temporary file in the same directory which then replaces the old file, so a
crash mid-write never leaves a truncated state file behind.
"""

import json
import os
import tempfile
from urllib.parse import quote

from locksmith.models.network import NetState
from locksmith.nm.state.base import StateStore
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)


class JSONStore(StateStore):
    """State store writing one JSON document per network."""

    def __init__(self, config):
        self.state_dir = config.STATE_DIR
        os.makedirs(self.state_dir, exist_ok=True)
        logger.info(f"JSON state store at {self.state_dir}")

    def _path(self, net_id: str) -> str:
        return os.path.join(self.state_dir, f"{quote(net_id, safe='')}.json")

    def get(self, net_id: str) -> NetState:
        path = self._path(net_id)
        if not os.path.isfile(path):
            logger.debug(f"No stored state for network {net_id}, starting empty")
            return NetState()

        with open(path) as f:
            return NetState.from_dict(json.load(f))

    def put(self, net_id: str, state: NetState) -> None:
        path = self._path(net_id)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.state_dir, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(state.to_dict(), f, indent=2, sort_keys=True)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
