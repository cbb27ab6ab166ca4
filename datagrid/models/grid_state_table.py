# datagrid/models/grid_state_table.py
# Document-store collection holding one persisted grid state per key

from sqlalchemy import JSON, BigInteger, Column, String, Table
from sqlalchemy.dialects.postgresql import JSONB

from datagrid.constants import MAX_KEY_LENGTH, STATE_COLLECTION
from datagrid.db.base import metadata


grid_states = Table(
    STATE_COLLECTION,
    metadata,
    Column('key', String(MAX_KEY_LENGTH), primary_key=True),  # grid persistence key
    Column('state', JSON().with_variant(JSONB(), 'postgresql'), nullable=False),  # persisted record
    Column('updated_at', BigInteger, nullable=False),  # epoch millis
)
