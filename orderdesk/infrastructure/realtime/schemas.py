from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from orderdesk.domain.entities.order import OrderItemStatus, OrderStatus
from orderdesk.domain.entities.realtime import OrderEvent, OrderItemEvent, RealtimeEventType


class EventModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class OrderEventPayload(EventModel):
    order_id: str = Field(..., min_length=1)
    status: OrderStatus
    timestamp: datetime
    message: str = ""
    table_id: str | None = None
    venue_id: str | None = None
    organization_id: str | None = None

    def to_event(self) -> OrderEvent:
        return OrderEvent(
            order_id=self.order_id,
            status=self.status,
            timestamp=self.timestamp,
            message=self.message,
            table_id=self.table_id,
            venue_id=self.venue_id,
            organization_id=self.organization_id,
        )


class OrderItemEventPayload(EventModel):
    order_id: str = Field(..., min_length=1)
    order_item_id: str = Field(..., min_length=1)
    status: OrderItemStatus
    timestamp: datetime
    message: str = ""

    def to_event(self) -> OrderItemEvent:
        return OrderItemEvent(
            order_id=self.order_id,
            order_item_id=self.order_item_id,
            status=self.status,
            timestamp=self.timestamp,
            message=self.message,
        )


PAYLOAD_MODELS: dict[RealtimeEventType, type[OrderEventPayload] | type[OrderItemEventPayload]] = {
    RealtimeEventType.ORDER_UPDATED: OrderEventPayload,
    RealtimeEventType.NEW_ORDER: OrderEventPayload,
    RealtimeEventType.ORDER_ITEM_UPDATED: OrderItemEventPayload,
}


def parse_event(event_type: RealtimeEventType, data: object) -> OrderEvent | OrderItemEvent:
    """Validate an inbound payload; raises pydantic.ValidationError when malformed."""
    return PAYLOAD_MODELS[event_type].model_validate(data).to_event()
