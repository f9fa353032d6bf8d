from src.models.announcement import Announcement
from src.models.subscriber import Subscriber

__all__ = [
    "Announcement",
    "Subscriber",
]
