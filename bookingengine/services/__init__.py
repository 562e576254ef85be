"""
Service layer helpers that orchestrate storage and domain logic.
"""

from .booking_service import (
    BookingCreation,
    BookingService,
    BookingStore,
    SeriesPolicy,
    ServiceResult,
)

__all__ = ["BookingCreation", "BookingService", "BookingStore", "SeriesPolicy", "ServiceResult"]
