"""
Shared room record store.

The multiplayer controllers only ever use ``get``, ``update`` and
``subscribe``; ``create`` is used by the room lifecycle. Records are plain
dicts in the shape produced by ``Room.to_dict``.
"""
import json
import logging
import threading
from collections import defaultdict, deque
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from unoreverse import db, socketio
from unoreverse.models import Room
from .errors import RoomNotFound, StaleRecordError, StoreWriteError

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = ('guest_id', 'status', 'game_state', 'winner_id')


class Subscription:
    def __init__(self, store: 'RoomStore', room_code: str, on_change: Callable[[dict], None]):
        self.store = store
        self.room_code = room_code
        self.on_change = on_change
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.store._remove(self)
            self.active = False


class RoomStore:
    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._local = threading.local()

    def reset(self) -> None:
        self._subscriptions.clear()

    def get(self, room_code: str) -> Optional[dict]:
        room = Room.query.filter_by(room_code=room_code).first()
        return room.to_dict() if room else None

    def create(self, host_id: str, guest_id: str) -> dict:
        room = Room(host_id=str(host_id), guest_id=str(guest_id), status='waiting', version=0)
        try:
            db.session.add(room)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreWriteError(str(exc)) from exc
        return room.to_dict()

    def update(self, room_code: str, fields: dict, expected_version: Optional[int] = None) -> dict:
        """Write ``fields`` and bump the version.

        With ``expected_version`` the write only lands if the stored version
        still matches; otherwise StaleRecordError is raised and nothing changes.
        """
        values = {}
        for key, value in fields.items():
            if key not in WRITABLE_FIELDS:
                raise ValueError(f"{key} is not a writable room field")
            values[key] = json.dumps(value) if key == 'game_state' and value is not None else value
        values['version'] = Room.version + 1

        query = Room.query.filter_by(room_code=room_code)
        if expected_version is not None:
            query = query.filter_by(version=expected_version)
        try:
            updated = query.update(values, synchronize_session=False)
            if not updated:
                db.session.rollback()
                current = self.get(room_code)
                if current is None:
                    raise RoomNotFound(f"Room {room_code} does not exist")
                raise StaleRecordError(
                    f"Room {room_code} is at version {current['version']}, expected {expected_version}"
                )
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreWriteError(str(exc)) from exc

        record = self.get(room_code)
        logger.info(f"[room-write] room={room_code} version={record['version']} fields={sorted(fields)}")
        self._publish(record)
        return record

    def subscribe(self, room_code: str, on_change: Callable[[dict], None]) -> Subscription:
        subscription = Subscription(self, room_code, on_change)
        self._subscriptions[room_code].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.room_code, [])
        if subscription in subs:
            subs.remove(subscription)

    def _publish(self, record: dict) -> None:
        # Writes made from inside a callback are queued so every subscriber
        # sees records in write order.
        queue = getattr(self._local, 'queue', None)
        if queue is None:
            queue = self._local.queue = deque()
        queue.append(record)
        if getattr(self._local, 'delivering', False):
            return
        self._local.delivering = True
        try:
            while queue:
                rec = queue.popleft()
                code = rec['room_code']
                socketio.emit('room_update', rec, to=f"room:{code}", namespace='/ws')
                for sub in list(self._subscriptions.get(code, [])):
                    try:
                        sub.on_change(rec)
                    except Exception:
                        logger.exception(f"[room-notify-failed] room={code} version={rec['version']}")
        finally:
            self._local.delivering = False


room_store = RoomStore()
