from pydantic import BaseModel
from datetime import datetime


class DeleteAccountRequestCreate(BaseModel):
    """Owner names the member who must confirm or reject the deletion."""
    target_member_id: int


class DeleteAccountRequestCreated(BaseModel):
    request_id: str


class DeleteAccountRequestRespond(BaseModel):
    accept: bool


class PendingDeleteRequestResponse(BaseModel):
    request_id: str
    owner_id: int
    owner_first_name: str
    owner_last_name: str
    household_name: str
    requested_at: datetime
