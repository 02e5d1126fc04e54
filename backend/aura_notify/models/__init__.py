from aura_notify.models.quote import MotivationalQuote
from aura_notify.models.user import NotificationUser

__all__ = [
    "MotivationalQuote",
    "NotificationUser",
]
