"""Base model shared by every persisted record."""

from datetime import datetime

from pydantic import BaseModel, Field

from deploy_engine.utils import new_record_id, utcnow


class Record(BaseModel):
    """A record kept in a ``RecordStore``, addressed by ``id``."""

    model_config = {"use_enum_values": True}

    id: str = Field(default_factory=new_record_id)
    created_at: datetime = Field(default_factory=utcnow)
