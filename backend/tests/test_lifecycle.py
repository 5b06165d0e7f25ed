"""
Lifecycle transition table tests.
"""

import pytest

from gestao.constants import SaleStatus
from gestao.errors import InvalidTransition
from gestao.services.lifecycle_service import can_transition, ensure_transition


@pytest.mark.parametrize(
    "kind,from_status,to_status",
    [
        ("purchase", "ACTIVE", "INACTIVE"),
        ("production", "ACTIVE", "INACTIVE"),
        ("abate", "ACTIVE", "INACTIVE"),
        ("sale", "PENDING", "PAID"),
        ("sale", "PENDING", "INACTIVE"),
        ("sale", "PAID", "INACTIVE"),
        ("expense", "PENDING", "PAID"),
        ("payable", "PENDING", "PAID"),
        ("receivable", "PENDING", "RECEIVED"),
        ("product", "INACTIVE", "ACTIVE"),
        ("client", "ACTIVE", "INACTIVE"),
    ],
)
def test_allowed_transitions(kind, from_status, to_status):
    assert can_transition(kind, from_status, to_status)
    assert ensure_transition(kind, from_status, to_status) == to_status


@pytest.mark.parametrize(
    "kind,from_status,to_status",
    [
        ("purchase", "INACTIVE", "ACTIVE"),
        ("sale", "PAID", "PENDING"),
        ("sale", "INACTIVE", "PAID"),
        ("payable", "PAID", "PENDING"),
        ("receivable", "RECEIVED", "PENDING"),
        ("expense", "PAID", "PAID"),
        ("supplier", "ACTIVE", "ACTIVE"),
    ],
)
def test_rejected_transitions(kind, from_status, to_status):
    assert not can_transition(kind, from_status, to_status)
    with pytest.raises(InvalidTransition):
        ensure_transition(kind, from_status, to_status)


def test_enum_members_are_accepted():
    assert ensure_transition("sale", SaleStatus.PENDING, SaleStatus.PAID) == "PAID"


def test_unknown_kind_is_rejected():
    with pytest.raises(InvalidTransition):
        can_transition("invoice", "ACTIVE", "INACTIVE")
