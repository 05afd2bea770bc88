from __future__ import annotations

from decimal import Decimal

import pytest

from routingplan.core.errors import EmptyWorkCenterGroupError
from routingplan.core.models import Machine, WorkCenter, WorkCenterGroup, WorkCenterType
from routingplan.core.work_center import WorkCenterService


def wc(code: str, kind: WorkCenterType, sequence: int = 0, **kwargs) -> WorkCenter:
    return WorkCenter(
        work_center_id=None,
        code=code,
        name=kwargs.pop("name", code),
        work_center_type=kind,
        machine=Machine(machine_id=1, code="M", name="M") if kind.is_machine_capable else None,
        sequence=sequence,
        duration_per_cycle=kwargs.pop("duration_per_cycle", 40),
        hr_duration_per_cycle=kwargs.pop("hr_duration_per_cycle", 25),
        min_capacity_per_cycle=Decimal(2),
        max_capacity_per_cycle=Decimal(8),
        **kwargs,
    )


def test_main_work_center_is_lowest_sequence():
    group = WorkCenterGroup(
        group_id=1,
        code="G",
        name="G",
        work_centers=frozenset({wc("B", WorkCenterType.MACHINE, 20), wc("A", WorkCenterType.HUMAN, 30), wc("C", WorkCenterType.BOTH, 5)}),
    )
    assert WorkCenterService().get_main_work_center_from_group(group).code == "C"


def test_main_work_center_ties_break_on_name():
    group = WorkCenterGroup(
        group_id=1,
        code="G",
        name="G",
        work_centers=frozenset({wc("X2", WorkCenterType.MACHINE, 1, name="Beta"), wc("X1", WorkCenterType.MACHINE, 1, name="Alpha")}),
    )
    assert WorkCenterService().get_main_work_center_from_group(group).name == "Alpha"


def test_main_work_center_of_no_group_is_none():
    assert WorkCenterService().get_main_work_center_from_group(None) is None


def test_empty_group_has_no_main_work_center():
    with pytest.raises(EmptyWorkCenterGroupError) as exc:
        WorkCenterService().get_main_work_center_from_group(WorkCenterGroup(group_id=1, code="G", name="Empty cell"))
    assert "Empty cell" in str(exc.value)


@pytest.mark.parametrize(
    "kind, machine, human, capacity",
    [
        (WorkCenterType.MACHINE, 40, 0, (Decimal(2), Decimal(8))),
        (WorkCenterType.HUMAN, 0, 25, (Decimal(1), Decimal(1))),
        (WorkCenterType.BOTH, 40, 25, (Decimal(2), Decimal(8))),
    ],
)
def test_figures_depend_on_work_center_kind(kind, machine, human, capacity):
    service = WorkCenterService()
    center = wc("W", kind)
    assert service.get_machine_duration_from_work_center(center) == machine
    assert service.get_human_duration_from_work_center(center) == human
    assert service.get_min_capacity_per_cycle_from_work_center(center) == capacity[0]
    assert service.get_max_capacity_per_cycle_from_work_center(center) == capacity[1]
