import logging
import threading
from datetime import date
from typing import Dict, List, Optional

from .base import ProfileCapability
from .response_models import DocumentType, Gender, TravelDocument, Traveler

logger = logging.getLogger(__name__)


def _demo_travelers() -> Dict[str, List[Traveler]]:
    return {
        "user-demo": [
            Traveler(
                id="trv-001",
                first_name="Ahmed",
                last_name="Alharbi",
                date_of_birth=date(1988, 4, 12),
                nationality="SA",
                gender=Gender.MALE,
                email="ahmed@example.com",
                phone="+966500000001",
                is_main_traveler=True,
                documents=[
                    TravelDocument(DocumentType.NATIONAL_ID, "1012345678", "SA", date(2030, 1, 1), is_default=True),
                    TravelDocument(DocumentType.PASSPORT, "P1234567", "SA", date(2029, 6, 30)),
                ],
            ),
            Traveler(
                id="trv-002",
                first_name="Sara",
                last_name="Alharbi",
                date_of_birth=date(1991, 9, 3),
                nationality="SA",
                gender=Gender.FEMALE,
                documents=[
                    TravelDocument(DocumentType.NATIONAL_ID, "1087654321", "SA", date(2031, 3, 15), is_default=True),
                ],
            ),
        ],
    }


class InMemoryProfileService(ProfileCapability):
    """Saved travelers per user id"""

    def __init__(self, travelers: Optional[Dict[str, List[Traveler]]] = None):
        self._travelers = dict(travelers) if travelers is not None else _demo_travelers()
        self._lock = threading.Lock()

    def get_travelers(self, user_id: str) -> List[Traveler]:
        with self._lock:
            travelers = list(self._travelers.get(user_id, []))
        logger.info(f"Loaded {len(travelers)} saved traveler(s) for user {user_id}")
        return travelers

