"""
Network state database model for Locksmith.

One row per overlay network. The state itself is stored as the JSON
document produced by NetState.to_dict().
"""

import datetime
import json

import peewee

from locksmith.db.base import BaseModel
from locksmith.models.network import NetState


class NetworkStateRecord(BaseModel):
    """
    Persisted state of one overlay network.

    Attributes:
        net_id: Network identifier (primary key).
        data: NetState serialized as JSON.
        updated_at: Time of the last write.
    """

    net_id = peewee.CharField(unique=True, primary_key=True)
    data = peewee.TextField(default="{}")
    updated_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "network_states"

    def get_state(self) -> NetState:
        """Parse the stored JSON into a NetState."""
        try:
            return NetState.from_dict(json.loads(self.data))
        except json.JSONDecodeError:
            return NetState()

    @classmethod
    def store_state(cls, net_id: str, state: NetState) -> None:
        """Insert or replace the row for a network."""
        cls.insert(
            net_id=net_id,
            data=json.dumps(state.to_dict(), sort_keys=True),
            updated_at=datetime.datetime.now(),
        ).on_conflict_replace().execute()
