# Change-feed envelope pushed to every connected client
from pydantic import BaseModel
from typing import Literal


class ChangeEvent(BaseModel):
    eventType: Literal["INSERT", "UPDATE"]
    table: str = "visitor_requests"
    record: dict
