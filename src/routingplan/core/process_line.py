from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import TYPE_CHECKING

from routingplan.core.errors import MissingMachineError, MissingWorkCenterError
from routingplan.core.models import CycleDuration, OperationOrder, ProcessLine, WorkCenter, WorkCenterGroup
from routingplan.core.numeric import ceil_div, max_duration, to_decimal, to_seconds
from routingplan.core.work_center import WorkCenterService

if TYPE_CHECKING:
    from routingplan.data.repository import RoutingRepository

logger = logging.getLogger(__name__)


class ProcessLineService:
    """Work center group assignment and cycle duration planning for process lines."""

    def __init__(
        self,
        repository: RoutingRepository,
        work_center_service: WorkCenterService | None = None,
    ) -> None:
        self.repository = repository
        self.work_center_service = work_center_service or WorkCenterService()

    # ---------- Work center group assignment ----------

    def assign_work_center_group(self, process_line: ProcessLine, template_group: WorkCenterGroup) -> ProcessLine:
        """Attach a fresh copy of ``template_group`` to the line and re-derive its figures.

        Runs as one transaction: on any error nothing is stored and
        ``process_line`` is left as it was.
        """
        wcs = self.work_center_service
        with self.repository.transaction() as con:
            line = self._copy_work_center_group(process_line, template_group, con=con)

            work_center = wcs.get_main_work_center_from_group(line.work_center_group)
            line = replace(
                line,
                work_center=work_center,
                duration_per_cycle=wcs.get_machine_duration_from_work_center(work_center),
                human_duration=wcs.get_human_duration_from_work_center(work_center),
                min_capacity_per_cycle=wcs.get_min_capacity_per_cycle_from_work_center(work_center),
                max_capacity_per_cycle=wcs.get_max_capacity_per_cycle_from_work_center(work_center),
            )
            line = self.repository.save_process_line(line, con=con)

        logger.info(
            "Assigned work center group %s (from template %s) to line %r, work center %s",
            line.work_center_group.group_id,
            template_group.group_id,
            line.name,
            line.work_center.code,
        )
        self.repository.log_audit(
            "ROUTING",
            "Assign Work Center Group",
            f"Line: {line.name}, Template: {template_group.code}, Work center: {line.work_center.code}",
        )
        return line

    def _copy_work_center_group(self, process_line: ProcessLine, template_group: WorkCenterGroup, *, con) -> ProcessLine:
        copy = self.repository.copy_work_center_group(template_group, con=con)
        return self.repository.save_process_line(replace(process_line, work_center_group=copy), con=con)

    # ---------- Cycle durations ----------

    def compute_cycle_durations(self, process_line: ProcessLine, qty) -> CycleDuration:
        """Planned durations (seconds) to run ``qty`` through the line.

        The planned duration is the total of the bottleneck resource: machine
        when its per-cycle time is the largest (ties included), human otherwise.
        """
        work_center = process_line.work_center
        if work_center is None:
            raise MissingWorkCenterError(process_line.process_code, process_line.name)

        qty = to_decimal(qty)
        if qty < 0:
            raise ValueError(f"quantity cannot be negative: {qty}")

        nb_cycles = self._compute_nb_cycles(process_line, qty)
        overhead = self._compute_fixed_overhead(work_center, nb_cycles)

        machine_per_cycle = int(process_line.duration_per_cycle or 0)
        human_per_cycle = int(process_line.human_duration or 0)
        max_per_cycle = max_duration([machine_per_cycle, human_per_cycle])

        machine_duration = overhead + to_seconds(nb_cycles * machine_per_cycle)
        human_duration = to_seconds(nb_cycles * human_per_cycle)

        planned_duration = 0
        if machine_per_cycle == max_per_cycle:
            planned_duration = machine_duration
        elif human_per_cycle == max_per_cycle:
            planned_duration = human_duration

        logger.debug(
            "Line %r qty=%s: cycles=%s overhead=%ss machine=%ss human=%ss planned=%ss",
            process_line.name,
            qty,
            nb_cycles,
            overhead,
            machine_duration,
            human_duration,
            planned_duration,
        )
        return CycleDuration(
            nb_cycles=nb_cycles,
            overhead=overhead,
            machine_duration=machine_duration,
            human_duration=human_duration,
            planned_duration=planned_duration,
        )

    def compute_entire_cycle_duration(
        self,
        operation_order: OperationOrder | None,
        process_line: ProcessLine,
        qty,
    ) -> int:
        durations = self.compute_cycle_durations(process_line, qty)
        if operation_order is not None:
            operation_order.planned_machine_duration = durations.machine_duration
            operation_order.planned_human_duration = durations.human_duration
        return durations.planned_duration

    def plan_operation_order(self, order_id: int) -> int:
        """Compute and store the planned durations of a saved operation order."""
        order = self.repository.get_operation_order(order_id)
        if order is None:
            raise ValueError(f"operation order not found: {order_id}")
        if order.process_line_id is None:
            raise ValueError(f"operation order {order.name!r} has no process line")
        line = self.repository.get_process_line(order.process_line_id)
        if line is None:
            raise ValueError(f"process line not found: {order.process_line_id}")

        planned = self.compute_entire_cycle_duration(order, line, order.qty)
        self.repository.save_operation_order(order)
        return planned

    @staticmethod
    def _compute_nb_cycles(process_line: ProcessLine, qty: Decimal) -> Decimal:
        max_capacity = to_decimal(process_line.max_capacity_per_cycle)
        # Zero capacity means unbounded: one cycle per unit.
        if max_capacity == 0:
            return qty
        return ceil_div(qty, max_capacity)

    @staticmethod
    def _compute_fixed_overhead(work_center: WorkCenter, nb_cycles: Decimal) -> int:
        if not work_center.work_center_type.is_machine_capable:
            return 0
        if work_center.machine is None:
            raise MissingMachineError(work_center.name)
        setups = max(nb_cycles - 1, Decimal(0))
        return (
            int(work_center.starting_duration)
            + int(work_center.ending_duration)
            + to_seconds(setups * int(work_center.setup_duration))
        )
