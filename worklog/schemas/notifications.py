import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class NotificationOut(BaseModel):
    id: uuid.UUID
    channel: str
    template_key: str
    payload_json: Optional[Dict[str, Any]] = None
    status: str
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True
