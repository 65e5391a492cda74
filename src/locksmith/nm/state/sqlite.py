"""SQLite state store backed by the peewee database layer."""

from locksmith.db.base import close_database, db, initialize_database
from locksmith.db.network_state import NetworkStateRecord
from locksmith.models.network import NetState
from locksmith.nm.state.base import StateStore
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)


class SQLiteStore(StateStore):
    """State store keeping one NetworkStateRecord row per network."""

    def __init__(self, config):
        initialize_database(config.DB_FILE)

    def get(self, net_id: str) -> NetState:
        record = NetworkStateRecord.get_or_none(NetworkStateRecord.net_id == net_id)
        if record is None:
            logger.debug(f"No stored state for network {net_id}, starting empty")
            return NetState()
        return record.get_state()

    def put(self, net_id: str, state: NetState) -> None:
        with db.atomic():
            NetworkStateRecord.store_state(net_id, state)

    def close(self) -> None:
        close_database()
