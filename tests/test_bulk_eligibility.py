"""Deletion eligibility classification."""
import pytest
from sqlalchemy.exc import OperationalError

from grant_portal.core.exceptions import EligibilityCheckError, ValidationError
from grant_portal.services.bulk_removal.eligibility import (
    EligibilityChecker, EligibilityReport, classify,
)


def test_classify_marks_any_dependency_as_ineligible():
    report = classify(
        ["a", "b", "c", "d"],
        {"a": ("Ana", "ana@x.org"), "b": ("Bruno", "b@x.org"), "c": (None, "c@x.org")},
        with_enrollments={"b"},
        with_payments=set(),
        with_reports={"c"},
    )
    by_id = {u.user_id: u for u in report.users}
    assert by_id["a"].can_delete
    assert not by_id["b"].can_delete and by_id["b"].dependencies == ["enrollments"]
    assert not by_id["c"].can_delete and by_id["c"].display_name == "c@x.org"
    # unknown profile is still classified
    assert by_id["d"].can_delete and by_id["d"].display_name == "User"
    assert report.user_ids == ["a", "b", "c", "d"]


def test_report_dict_round_trip_keeps_partition():
    report = classify(["a", "b"], {}, {"b"}, {"b"}, set())
    restored = EligibilityReport.from_dict(report.to_dict())
    assert [u.user_id for u in restored.eligible_for_deletion] == ["a"]
    assert restored.ineligible_for_deletion[0].dependencies == ["enrollments", "payments"]


def test_checker_reads_dependencies(db, make_user, project, link_history):
    clean = make_user()
    enrolled = make_user()
    paid = make_user()
    reporter = make_user()
    link_history(enrolled, project)
    link_history(paid, project, payment=True)
    link_history(reporter, project, enrollment=False, report=True)

    report = EligibilityChecker(db).check([clean.id, enrolled.id, paid.id, reporter.id])

    assert [u.user_id for u in report.eligible_for_deletion] == [clean.id]
    flags = {u.user_id: u.dependencies for u in report.ineligible_for_deletion}
    assert flags[enrolled.id] == ["enrollments"]
    assert flags[paid.id] == ["enrollments", "payments"]
    assert flags[reporter.id] == ["reports"]


def test_checker_is_idempotent(db, make_user, project, link_history):
    users = [make_user(), make_user()]
    link_history(users[1], project)
    checker = EligibilityChecker(db)
    ids = [u.id for u in users]
    assert checker.check(ids) == checker.check(ids)


def test_checker_deduplicates_and_rejects_empty(db, make_user):
    user = make_user()
    report = EligibilityChecker(db).check([user.id, user.id])
    assert report.user_ids == [user.id]
    with pytest.raises(ValidationError):
        EligibilityChecker(db).check([])


def test_checker_wraps_database_errors(db, make_user, monkeypatch):
    user = make_user()

    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "query", broken_query)
    with pytest.raises(EligibilityCheckError):
        EligibilityChecker(db).check([user.id])
