from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from orderdesk.domain.entities.order import OrderItemStatus, OrderStatus
from orderdesk.domain.exceptions import UnknownRoomTypeError


class RoomType(str, Enum):
    ORDER = "order"
    TABLE = "table"
    VENUE = "venue"
    ORGANIZATION = "organization"


class RealtimeEventType(str, Enum):
    ORDER_UPDATED = "orderUpdated"
    ORDER_ITEM_UPDATED = "orderItemUpdated"
    NEW_ORDER = "newOrder"


JOIN_MESSAGES: dict[RoomType, str] = {
    RoomType.ORDER: "joinOrderRoom",
    RoomType.VENUE: "joinVenueRoom",
    RoomType.TABLE: "joinTableRoom",
    RoomType.ORGANIZATION: "joinOrganizationRoom",
}

LEAVE_MESSAGE = "leaveRoom"


def parse_room_type(value: RoomType | str) -> RoomType:
    try:
        return RoomType(value)
    except ValueError as exc:
        raise UnknownRoomTypeError(f"Unknown room type: {value!r}") from exc


@dataclass(frozen=True)
class RoomSubscription:
    room_type: RoomType
    target_id: str

    @property
    def key(self) -> str:
        return f"{self.room_type.value}:{self.target_id}"


@dataclass(frozen=True)
class OrderEvent:
    order_id: str
    status: OrderStatus
    timestamp: datetime
    message: str
    table_id: str | None = None
    venue_id: str | None = None
    organization_id: str | None = None


@dataclass(frozen=True)
class OrderItemEvent:
    order_id: str
    order_item_id: str
    status: OrderItemStatus
    timestamp: datetime
    message: str
