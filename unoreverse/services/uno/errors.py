class UnoError(Exception):
    """Base class for every rejected UNO operation."""


class IllegalMove(UnoError):
    """The card cannot be played (not in hand, or not legal on the pile)."""


class NotYourTurn(UnoError):
    pass


class GameFinished(UnoError):
    pass


class InvalidTransition(UnoError):
    """A room status change that the lifecycle does not allow."""


class RoomNotFound(UnoError):
    pass


class StaleRecordError(UnoError):
    """A conditional write supplied a version that is no longer current."""


class StoreWriteError(UnoError):
    """The shared store failed to persist a write."""


class NotInRoom(UnoError):
    """The player is neither the host nor the guest of the room."""
