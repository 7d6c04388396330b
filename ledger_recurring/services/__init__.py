"""Recurring engine services: store, processor, scheduler, lifecycle."""

from ledger_recurring.services.lifecycle import TemplateLifecycleService
from ledger_recurring.services.processor import RecurringProcessor
from ledger_recurring.services.scheduler import RecurringScheduler
from ledger_recurring.services.template_store import TemplateStore

__all__ = [
    "RecurringProcessor",
    "RecurringScheduler",
    "TemplateLifecycleService",
    "TemplateStore",
]
