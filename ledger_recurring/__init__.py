"""
ledger_recurring -- Recurring-transaction scheduling and materialization.

Turns recurrence templates ("rent monthly on the 5th") into concrete
ledger entries, exactly once per due cycle.  A periodic scheduler and an
administrative trigger both call the same batch processor; per-template
failures are isolated and retried on the next cycle.

Architecture:
    ledger_recurring/ is a top-level package above ledger_kernel and
    ledger_config.  Nothing in the kernel imports from it (except the
    model registry used by ``create_tables``).

Invariants:
    RT-1  Per-template atomicity: the ledger INSERT and the template
          advance commit in one transaction, or neither does
    RT-2  Optimistic guard: commit_cycle matches on the selected
          next_occurrence and fails loudly when zero rows match
    RT-3  Storage backstop: UNIQUE(recurring_template_id, entry_date)
    RT-4  Clock injection (no datetime.now() calls outside SystemClock)
    RT-5  Occurrence calculation is pure
    RT-6  Inactive templates are never selected
    RT-7  Per-template failures never raise out of process_due
    RT-8  Cancellation only between templates
    RT-9  Every cycle leaves an audit row
"""
