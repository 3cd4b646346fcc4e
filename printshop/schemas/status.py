"""Order status schemas."""

from pydantic import BaseModel, ConfigDict


class StatusRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    css_color: str | None = None
    sort_order: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class StatusSummary(BaseModel):
    id: int
    name: str
    css_color: str | None = None

    model_config = ConfigDict(from_attributes=True)
