"""
Durable key/value entry.

Backs SqlKVStore: relay performance records (`stats:{endpoint}`) and
submission status records (`tx:{id}`). Each write replaces the value and
pushes `expires_at` forward; rows past `expires_at` read as absent and are
removed by the periodic purge.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel

from mev_shield.core.typing import utc_now


class KVEntry(SQLModel, table=True):
    __tablename__ = "kv_entry"

    key: str = Field(primary_key=True, max_length=255)
    value: Any = Field(default=None, sa_column=Column(JSON))
    expires_at: datetime = Field(index=True)
    updated_at: datetime = Field(default_factory=utc_now)
