from __future__ import annotations

from decimal import Decimal

import pytest

from routingplan.core.errors import MissingMachineError, MissingWorkCenterError
from routingplan.core.models import (
    Machine,
    OperationOrder,
    ProcessLine,
    ProdProcess,
    WorkCenter,
    WorkCenterType,
)
from routingplan.core.process_line import ProcessLineService


@pytest.fixture()
def service() -> ProcessLineService:
    # The calculator never touches storage.
    return ProcessLineService(repository=None)


def make_line(work_center: WorkCenter | None, **kwargs) -> ProcessLine:
    defaults = dict(
        line_id=1,
        name="Cutting",
        prod_process=ProdProcess(process_id=1, code="PP-01", name="Frame"),
        work_center=work_center,
        duration_per_cycle=0,
        human_duration=0,
        min_capacity_per_cycle=Decimal(1),
        max_capacity_per_cycle=Decimal(1),
    )
    defaults.update(kwargs)
    return ProcessLine(**defaults)


def machine_center(**kwargs) -> WorkCenter:
    defaults = dict(
        work_center_id=1,
        code="WC-PRESS",
        name="Press",
        work_center_type=WorkCenterType.MACHINE,
        machine=Machine(machine_id=1, code="M-01", name="Press 200t"),
    )
    defaults.update(kwargs)
    return WorkCenter(**defaults)


def human_center(**kwargs) -> WorkCenter:
    defaults = dict(work_center_id=2, code="WC-ASSY", name="Assembly", work_center_type=WorkCenterType.HUMAN)
    defaults.update(kwargs)
    return WorkCenter(**defaults)


def test_human_only_line_rounds_cycles_up_and_plans_human_time(service):
    line = make_line(human_center(), max_capacity_per_cycle=Decimal(3), human_duration=60, duration_per_cycle=0)
    order = OperationOrder(order_id=1, name="OP-1")

    planned = service.compute_entire_cycle_duration(order, line, Decimal(10))

    durations = service.compute_cycle_durations(line, Decimal(10))
    assert durations.nb_cycles == 4
    assert durations.human_duration == 240
    assert planned == 240
    assert order.planned_machine_duration == 0
    assert order.planned_human_duration == 240


def test_zero_capacity_means_one_cycle_per_unit_with_machine_overhead(service):
    wc = machine_center(starting_duration=10, ending_duration=5, setup_duration=2)
    line = make_line(wc, max_capacity_per_cycle=Decimal(0), duration_per_cycle=50)

    durations = service.compute_cycle_durations(line, Decimal(5))

    assert durations.nb_cycles == 5
    assert durations.overhead == 23
    assert durations.machine_duration == 273
    assert durations.planned_duration == 273


def test_machine_center_without_machine_fails_and_leaves_order_untouched(service):
    wc = machine_center(name="Lathe", machine=None)
    line = make_line(wc, duration_per_cycle=30)
    order = OperationOrder(order_id=1, name="OP-1")

    with pytest.raises(MissingMachineError) as exc:
        service.compute_entire_cycle_duration(order, line, Decimal(4))

    assert exc.value.work_center_name == "Lathe"
    assert "Lathe" in str(exc.value)
    assert order.planned_machine_duration is None
    assert order.planned_human_duration is None
    assert line.duration_per_cycle == 30


def test_both_kind_without_machine_also_fails(service):
    wc = machine_center(work_center_type=WorkCenterType.BOTH, machine=None)
    with pytest.raises(MissingMachineError):
        service.compute_cycle_durations(make_line(wc), Decimal(1))


def test_missing_work_center_fails_before_anything_else(service):
    # Invalid capacity would break the arithmetic if it ran.
    line = make_line(None, name="Welding", max_capacity_per_cycle=Decimal(-1))

    with pytest.raises(MissingWorkCenterError) as exc:
        service.compute_cycle_durations(line, Decimal(3))

    assert exc.value.process_code == "PP-01"
    assert exc.value.line_name == "Welding"
    assert "PP-01" in str(exc.value) and "Welding" in str(exc.value)


def test_missing_work_center_without_process_renders_null_code(service):
    line = make_line(None, prod_process=None)
    with pytest.raises(MissingWorkCenterError) as exc:
        service.compute_cycle_durations(line, Decimal(1))
    assert exc.value.process_code is None
    assert "null" in str(exc.value)


@pytest.mark.parametrize(
    "qty, capacity, expected",
    [
        (Decimal(1), Decimal(1), 1),
        (Decimal(9), Decimal(3), 3),
        (Decimal(10), Decimal(3), 4),
        (Decimal("7.5"), Decimal("2.5"), 3),
        (Decimal("7.6"), Decimal("2.5"), 4),
        (Decimal(1), Decimal(100), 1),
    ],
)
def test_cycles_are_ceiling_of_quantity_over_capacity(service, qty, capacity, expected):
    line = make_line(human_center(), max_capacity_per_cycle=capacity)
    nb_cycles = service.compute_cycle_durations(line, qty).nb_cycles
    assert nb_cycles == expected
    assert nb_cycles == nb_cycles.to_integral_value()


def test_setup_is_counted_between_cycles_only(service):
    wc = machine_center(starting_duration=100, ending_duration=40, setup_duration=15)
    line = make_line(wc, max_capacity_per_cycle=Decimal(4), duration_per_cycle=20)

    durations = service.compute_cycle_durations(line, Decimal(12))

    assert durations.nb_cycles == 3
    assert durations.overhead == 100 + 40 + 2 * 15
    assert durations.machine_duration == 170 + 3 * 20


def test_zero_quantity_never_goes_negative(service):
    wc = machine_center(starting_duration=0, ending_duration=0, setup_duration=50)
    line = make_line(wc, duration_per_cycle=10, human_duration=5)

    durations = service.compute_cycle_durations(line, Decimal(0))

    assert durations.nb_cycles == 0
    assert durations.machine_duration == 0
    assert durations.human_duration == 0
    assert durations.planned_duration == 0


def test_human_center_has_no_fixed_overhead(service):
    wc = human_center(starting_duration=100, ending_duration=100, setup_duration=100)
    line = make_line(wc, max_capacity_per_cycle=Decimal(2), human_duration=30)
    durations = service.compute_cycle_durations(line, Decimal(4))
    assert durations.overhead == 0
    assert durations.machine_duration == 0
    assert durations.planned_duration == 60


def test_bottleneck_picks_the_larger_per_cycle_resource(service):
    wc = machine_center(work_center_type=WorkCenterType.BOTH, starting_duration=5)
    machine_bound = make_line(wc, duration_per_cycle=40, human_duration=10)
    human_bound = make_line(wc, duration_per_cycle=10, human_duration=40)

    d1 = service.compute_cycle_durations(machine_bound, Decimal(3))
    d2 = service.compute_cycle_durations(human_bound, Decimal(3))

    assert d1.planned_duration == d1.machine_duration == 5 + 120
    assert d2.planned_duration == d2.human_duration == 120
    assert d2.machine_duration == 5 + 30


def test_equal_per_cycle_times_select_machine(service):
    wc = machine_center(work_center_type=WorkCenterType.BOTH, starting_duration=100)
    line = make_line(wc, duration_per_cycle=20, human_duration=20)

    durations = service.compute_cycle_durations(line, Decimal(2))

    # Machine total carries the overhead, so it is the larger one here.
    assert durations.planned_duration == durations.machine_duration == 140
    assert durations.human_duration == 40


def test_unset_per_cycle_times_default_to_zero(service):
    line = make_line(machine_center(), duration_per_cycle=None, human_duration=None, max_capacity_per_cycle=None)
    durations = service.compute_cycle_durations(line, Decimal(3))
    assert durations.nb_cycles == 3
    assert durations.planned_duration == 0


def test_order_receives_both_totals_regardless_of_bottleneck(service):
    wc = machine_center(work_center_type=WorkCenterType.BOTH)
    line = make_line(wc, duration_per_cycle=10, human_duration=25)
    order = OperationOrder(order_id=7, name="OP-7")

    planned = service.compute_entire_cycle_duration(order, line, Decimal(2))

    assert planned == 50
    assert order.planned_machine_duration == 20
    assert order.planned_human_duration == 50


def test_without_order_only_the_duration_is_returned(service):
    line = make_line(machine_center(), duration_per_cycle=10)
    assert service.compute_entire_cycle_duration(None, line, Decimal(2)) == 20


def test_repeated_calls_give_identical_results(service):
    wc = machine_center(starting_duration=3, ending_duration=4, setup_duration=5)
    line = make_line(wc, max_capacity_per_cycle=Decimal(7), duration_per_cycle=11, human_duration=9)
    assert service.compute_cycle_durations(line, Decimal(50)) == service.compute_cycle_durations(line, Decimal(50))


def test_quantity_accepts_int_and_string(service):
    line = make_line(human_center(), max_capacity_per_cycle=Decimal(3), human_duration=60)
    assert service.compute_entire_cycle_duration(None, line, 10) == 240
    assert service.compute_entire_cycle_duration(None, line, "10") == 240


def test_negative_quantity_is_rejected(service):
    with pytest.raises(ValueError):
        service.compute_cycle_durations(make_line(machine_center()), Decimal(-1))
