"""Trigger sources and the queue that feeds the reconciliation loop."""

from cabundle.trigger.periodic import PeriodicTrigger, TriggerState
from cabundle.trigger.queue import TriggerQueue

__all__ = ["PeriodicTrigger", "TriggerQueue", "TriggerState"]
