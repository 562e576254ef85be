"""
Adapters layer - storage implementations of the BookingStore protocol.
"""

from .memory_store import MemoryBookingStore, booking_from_dict

__all__ = ["MemoryBookingStore", "booking_from_dict"]
