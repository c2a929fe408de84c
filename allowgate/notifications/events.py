"""
Inbound mini-app lifecycle events.

A closed tagged union on the "event" field. Variants that enable
notifications always carry notificationDetails; added may or may not.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError

from allowgate.core.exceptions import InvalidEventData
from allowgate.notifications.tokens import NotificationDetails


class NotificationDetailsModel(BaseModel):
    url: HttpUrl
    token: str = Field(..., min_length=1)

    def to_details(self) -> NotificationDetails:
        return NotificationDetails(token=self.token, url=str(self.url))


class _EventBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MiniAppAdded(_EventBase):
    event: Literal["miniapp_added"]
    notification_details: Optional[NotificationDetailsModel] = Field(None, alias="notificationDetails")


class MiniAppRemoved(_EventBase):
    event: Literal["miniapp_removed"]


class NotificationsEnabled(_EventBase):
    event: Literal["notifications_enabled"]
    notification_details: NotificationDetailsModel = Field(..., alias="notificationDetails")


class NotificationsDisabled(_EventBase):
    event: Literal["notifications_disabled"]


WebhookEvent = Annotated[
    Union[MiniAppAdded, MiniAppRemoved, NotificationsEnabled, NotificationsDisabled],
    Field(discriminator="event"),
]

_event_adapter: TypeAdapter = TypeAdapter(WebhookEvent)


def parse_event(payload: object) -> WebhookEvent:
    """Validate a decoded payload into one event variant; anything else is InvalidEventData."""
    try:
        return _event_adapter.validate_python(payload)
    except ValidationError as e:
        raise InvalidEventData(f"Invalid event payload: {e.error_count()} error(s)") from e
