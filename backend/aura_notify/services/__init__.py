from aura_notify.services.dispatcher import DispatchResult, MotivationDispatcher
from aura_notify.services.directory import MotivationDirectory

__all__ = ["DispatchResult", "MotivationDirectory", "MotivationDispatcher"]
