"""Room lifecycle: creation, invitation and the status state machine.

    waiting -> ready -> playing -> finished

``transition`` is the single place that decides whether a status change
is allowed; dealing twice or re-opening a finished room raise
InvalidTransition.
"""
import logging
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from unoreverse import db
from unoreverse.models import Message
from .errors import InvalidTransition

logger = logging.getLogger(__name__)


class RoomStatus(str, Enum):
    WAITING = 'waiting'
    READY = 'ready'
    PLAYING = 'playing'
    FINISHED = 'finished'


TRANSITIONS = {
    RoomStatus.WAITING: {RoomStatus.READY},
    RoomStatus.READY: {RoomStatus.PLAYING},
    RoomStatus.PLAYING: {RoomStatus.FINISHED},
    RoomStatus.FINISHED: set(),
}


def transition(current, target) -> RoomStatus:
    current, target = RoomStatus(current), RoomStatus(target)
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(f"Room cannot go from {current.value} to {target.value}")
    return target


def invite_link(room_code: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}?room={room_code}"


def send_invitation(host_id: str, guest_id: str, room_code: str, base_url: str) -> Optional[Message]:
    """Drop an invitation into the guest's inbox. Failures are logged, not raised."""
    content = f"Let's play UNO! Join my room: {invite_link(room_code, base_url)}"
    message = Message(sender_id=str(host_id), recipient_id=str(guest_id), content=content)
    try:
        db.session.add(message)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"[invite-failed] room={room_code} guest={guest_id}")
        return None
    logger.info(f"[invite] room={room_code} host={host_id} guest={guest_id}")
    return message


def create_room(store, host_id: str, guest_id: str, base_url: str) -> str:
    record = store.create(str(host_id), str(guest_id))
    send_invitation(host_id, guest_id, record['room_code'], base_url)
    return record['room_code']
