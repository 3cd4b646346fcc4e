"""Webhook subscriber schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WebhookCreate(BaseModel):
    destination_url: str = Field(min_length=1, max_length=500)
    description: str | None = None
    is_active: bool = True


class WebhookUpdate(BaseModel):
    destination_url: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    is_active: bool | None = None


class WebhookRead(WebhookCreate):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
