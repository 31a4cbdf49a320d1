"""Real-time infrastructure — rooms, sessions, and the order event router.

Events flow one way through three pieces:
1. SessionGateway — authenticates sockets and puts them in rooms
2. EventRouter — turns domain events into room broadcasts
3. RoomDirectory — fans a broadcast out to the sessions in a room

Rooms are "adminRoom" for every admin dashboard and "user_<id>" for each
customer's open tabs.
"""

ADMIN_ROOM = "adminRoom"


def room_for_user(user_id: str) -> str:
    return f"user_{user_id}"


def is_user_room(room: str) -> bool:
    return room.startswith("user_")
