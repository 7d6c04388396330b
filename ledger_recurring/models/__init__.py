"""ORM models for the recurring engine."""

from ledger_recurring.models.cycle import RecurringCycleModel
from ledger_recurring.models.template import RecurringTemplateModel

__all__ = [
    "RecurringCycleModel",
    "RecurringTemplateModel",
    "import_all_orm_models",
]


def import_all_orm_models() -> None:
    """Import every ORM module so ``Base.metadata`` knows all tables."""
    import ledger_kernel.models.ledger_entry  # noqa: F401
    import ledger_recurring.models.cycle  # noqa: F401
    import ledger_recurring.models.template  # noqa: F401
