from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

TELL_LATEST_TIP_INTENT = 'tell_latest_tip'
TELL_TIP_INTENT = 'tell_tip'
RANDOM_CATEGORY = 'random'
RECENT_TIP = 'most recent'

# Per-user storage flags, kept across conversations by the platform
DAILY_NOTIFICATION_ASKED = 'daily_notification_asked'
PUSH_NOTIFICATION_ASKED = 'push_notification_asked'

RecordId = Union[int, str]

class ConsentRecord(BaseModel):
    """A user's standing consent to push delivery for one intent"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[RecordId] = None
    user_id: str = Field(alias='userId')
    intent: str

    def to_row(self) -> Dict[str, Any]:
        return {'userId': self.user_id, 'intent': self.intent}

class TipRecord(BaseModel):
    id: Optional[RecordId] = None
    category: str
    tip: str
    url: str = ''
    created_at: Optional[datetime] = None

class StoreEvent(BaseModel):
    """Body of a Supabase database webhook"""
    type: str
    table: str
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None

    @property
    def is_insert(self) -> bool:
        return self.type.upper() == 'INSERT'
