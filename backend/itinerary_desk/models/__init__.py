from itinerary_desk.models.base import Base
from itinerary_desk.models.itinerary import Document, Itinerary
from itinerary_desk.models.user import UserRole

__all__ = [
    "Base",
    "Itinerary",
    "Document",
    "UserRole",
]
