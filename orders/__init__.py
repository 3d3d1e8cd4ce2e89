"""
Orders domain package (transfer requests and bids).

Public API:
- Domain models: Job, Bid, JobStatus, PaymentStatus, BookingType, VehicleCategory
- Storage: InMemoryJobStore
"""
from .models import Job, Bid, JobStatus, PaymentStatus, BookingType, VehicleCategory, validate_distance
from .store import InMemoryJobStore

__all__ = ["Job",
           "Bid",
             "JobStatus",
               "PaymentStatus",
               "BookingType",
               "VehicleCategory",
               "validate_distance",
               "InMemoryJobStore",
               ]
