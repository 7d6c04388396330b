"""
Tests for TemplateStore -- due selection and the guarded cycle commit.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import CycleConflictError
from ledger_recurring.domain.types import CycleUpdate
from ledger_recurring.services.template_store import TemplateStore

UTC = timezone.utc
NOW = datetime(2024, 1, 5, 3, tzinfo=UTC)


def _at(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestFindDue:
    def test_selects_active_due_oldest_first(self, make_template, db_session):
        newer = make_template(next_occurrence=_at(2024, 1, 5))
        older = make_template(next_occurrence=_at(2024, 1, 1))
        make_template(next_occurrence=_at(2024, 1, 5, 3, 0, 1))
        make_template(next_occurrence=_at(2024, 1, 1), is_active=False)

        due = TemplateStore(db_session).find_due(NOW)

        assert [t.template_id for t in due] == [older.template_id, newer.template_id]

    def test_boundary_is_inclusive(self, make_template, db_session):
        template = make_template(next_occurrence=NOW)
        assert [t.template_id for t in TemplateStore(db_session).find_due(NOW)] == [
            template.template_id,
        ]

    def test_returns_snapshots(self, make_template, db_session):
        make_template()
        due = TemplateStore(db_session).find_due(NOW)
        assert due[0].next_occurrence == _at(2024, 1, 5)
        assert due[0].next_occurrence.tzinfo is not None


class TestCommitCycle:
    def _update(self, next_at, is_active=True) -> CycleUpdate:
        return CycleUpdate(last_processed=NOW, next_occurrence=next_at, is_active=is_active)

    def test_advances_matching_row(self, make_template, db_session, load_template):
        template = make_template()
        store = TemplateStore(db_session)

        store.commit_cycle(template.template_id, _at(2024, 1, 5), self._update(_at(2024, 2, 5)))
        db_session.commit()

        after = load_template(template.template_id)
        assert after.next_occurrence == _at(2024, 2, 5)
        assert after.last_processed == NOW

    def test_second_commit_for_same_occurrence_conflicts(self, make_template, db_session):
        template = make_template()
        store = TemplateStore(db_session)
        store.commit_cycle(template.template_id, _at(2024, 1, 5), self._update(_at(2024, 2, 5)))

        with pytest.raises(CycleConflictError):
            store.commit_cycle(template.template_id, _at(2024, 1, 5), self._update(_at(2024, 2, 5)))

    def test_inactive_row_conflicts(self, make_template, db_session):
        template = make_template(is_active=False)
        with pytest.raises(CycleConflictError):
            TemplateStore(db_session).commit_cycle(
                template.template_id, _at(2024, 1, 5), self._update(_at(2024, 2, 5)),
            )

    def test_missing_row_conflicts(self, db_session):
        with pytest.raises(CycleConflictError) as exc_info:
            TemplateStore(db_session).commit_cycle(
                uuid4(), _at(2024, 1, 5), self._update(_at(2024, 2, 5)),
            )
        assert exc_info.value.expected_next_occurrence == "2024-01-05T00:00:00+00:00"

    def test_deactivation_keeps_date(self, make_template, db_session, load_template):
        template = make_template()
        TemplateStore(db_session).commit_cycle(
            template.template_id, _at(2024, 1, 5), self._update(_at(2024, 1, 5), is_active=False),
        )
        db_session.commit()

        after = load_template(template.template_id)
        assert after.is_active is False
        assert after.next_occurrence == _at(2024, 1, 5)


class TestOwnerScoped:
    def test_get_owned(self, make_template, db_session, owner_id):
        template = make_template()
        store = TemplateStore(db_session)
        assert store.get_owned(owner_id, template.template_id) is not None
        assert store.get_owned(uuid4(), template.template_id) is None

    def test_delete_owned(self, make_template, db_session, owner_id):
        template = make_template()
        store = TemplateStore(db_session)
        assert store.delete_owned(uuid4(), template.template_id) is False
        assert store.delete_owned(owner_id, template.template_id) is True
        assert store.get_owned(owner_id, template.template_id) is None
