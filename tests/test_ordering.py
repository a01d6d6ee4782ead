"""Tests for branch selection and version ordering."""

from projectxfer.models.project import Version
from projectxfer.services.ordering import (
    branches_to_process,
    order_branch_names,
    sort_versions_by_creation,
)


def test_default_only_makes_no_remote_call(source):
    app = source.add_project("p1", "PA1", default_branch="Main", branches=["Dev", "Main"])

    branches = branches_to_process(source, app, default_only=True)

    assert [(b.name, b.is_default) for b in branches] == [("Main", True)]
    assert source.count("list_branches") == 0


def test_empty_branch_list_falls_back_to_default(source):
    app = source.add_project("p1", "PA1", default_branch="Trunk")

    branches = branches_to_process(source, app)

    assert [b.name for b in branches] == ["Trunk"]
    assert source.count("list_branches") == 1


def test_default_branch_moves_first_rest_keep_remote_order(source):
    app = source.add_project("p1", "PA1", default_branch="Main", branches=["Zeta", "Alpha", "Main", "Beta"])

    assert [b.name for b in branches_to_process(source, app)] == ["Main", "Zeta", "Alpha", "Beta"]


def test_order_branch_names_default_then_alphabetical():
    assert order_branch_names(["Zeta", "Main", "Alpha"], "Main") == ["Main", "Alpha", "Zeta"]
    assert order_branch_names(["b", "a"], None) == ["a", "b"]


def test_sort_versions_oldest_first_missing_dates_last():
    versions = [
        Version(name="none"),
        Version(name="new", creation_date="2024-03-01T00:00:00Z"),
        Version(name="old", creation_date="2023-12-31T23:59:59Z"),
    ]

    assert [v.name for v in sort_versions_by_creation(versions)] == ["old", "new", "none"]
