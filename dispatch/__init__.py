#Expose the high-level lifecycle pieces:
#Bid ledger (append bids, resolve acceptance)
#Lifecycle orchestrator (the "one call" entry point per operation)
#Notification sinks and the transition table

from .bids import BidLedger
from .lifecycle import DisputeResolution, JobLifecycle  #the main entry point for state-changing operations
from .notifications import InMemoryNotificationSink, LoggingNotificationSink, Notification, Severity
from .policy import LifecyclePolicy, default_lifecycle_policy
from .state_machines import can_transition, ensure_transition

__all__ = [
    "BidLedger",
    "JobLifecycle",
    "DisputeResolution",
    "InMemoryNotificationSink",
    "LoggingNotificationSink",
    "Notification",
    "Severity",
    "LifecyclePolicy",
    "default_lifecycle_policy",
    "can_transition",
    "ensure_transition",
]
