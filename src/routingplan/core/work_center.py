from __future__ import annotations

from decimal import Decimal

from routingplan.core.errors import EmptyWorkCenterGroupError
from routingplan.core.models import WorkCenter, WorkCenterGroup


class WorkCenterService:
    """Read-only view over fully loaded work centers.

    Figures not applicable to a work center kind resolve to neutral values:
    no machine time on a human station, no human time on a machine-only
    center, and a capacity of one per cycle when no machine drives it.
    """

    def get_main_work_center_from_group(self, group: WorkCenterGroup | None) -> WorkCenter | None:
        if group is None:
            return None
        if not group.work_centers:
            raise EmptyWorkCenterGroupError(group.name)
        return min(group.work_centers, key=lambda wc: (wc.sequence, wc.name, wc.work_center_id or 0))

    def get_machine_duration_from_work_center(self, work_center: WorkCenter) -> int:
        if work_center.work_center_type.is_machine_capable:
            return int(work_center.duration_per_cycle or 0)
        return 0

    def get_human_duration_from_work_center(self, work_center: WorkCenter) -> int:
        if work_center.work_center_type.is_human_capable:
            return int(work_center.hr_duration_per_cycle or 0)
        return 0

    def get_min_capacity_per_cycle_from_work_center(self, work_center: WorkCenter) -> Decimal:
        if work_center.work_center_type.is_machine_capable:
            return Decimal(work_center.min_capacity_per_cycle)
        return Decimal(1)

    def get_max_capacity_per_cycle_from_work_center(self, work_center: WorkCenter) -> Decimal:
        if work_center.work_center_type.is_machine_capable:
            return Decimal(work_center.max_capacity_per_cycle)
        return Decimal(1)
