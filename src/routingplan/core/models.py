from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import IntEnum


class WorkCenterType(IntEnum):
    HUMAN = 1
    MACHINE = 2
    BOTH = 3

    @property
    def is_machine_capable(self) -> bool:
        return self in (WorkCenterType.MACHINE, WorkCenterType.BOTH)

    @property
    def is_human_capable(self) -> bool:
        return self in (WorkCenterType.HUMAN, WorkCenterType.BOTH)


@dataclass(frozen=True)
class Machine:
    machine_id: int | None
    code: str
    name: str


@dataclass(frozen=True)
class WorkCenter:
    work_center_id: int | None
    code: str
    name: str
    work_center_type: WorkCenterType = WorkCenterType.MACHINE
    machine: Machine | None = None
    sequence: int = 0

    # Fixed overhead, seconds
    starting_duration: int = 0
    ending_duration: int = 0
    setup_duration: int = 0

    # Per-cycle figures surfaced through WorkCenterService
    duration_per_cycle: int = 0
    hr_duration_per_cycle: int = 0
    min_capacity_per_cycle: Decimal = Decimal(1)
    max_capacity_per_cycle: Decimal = Decimal(1)


@dataclass(frozen=True)
class WorkCenterGroup:
    group_id: int | None
    code: str
    name: str
    is_template: bool = False
    template_origin_id: int | None = None
    work_centers: frozenset[WorkCenter] = field(default_factory=frozenset)

    @classmethod
    def instantiate_from_template(cls, template: WorkCenterGroup) -> WorkCenterGroup:
        """Build a fresh, non-template group from ``template``.

        The copy has no id until it is persisted, keeps a link to the
        template it came from and holds the same work center memberships.
        """
        return cls(
            group_id=None,
            code=template.code,
            name=template.name,
            is_template=False,
            template_origin_id=template.group_id,
            work_centers=frozenset(template.work_centers),
        )


@dataclass(frozen=True)
class ProdProcess:
    process_id: int | None
    code: str
    name: str = ""


@dataclass(frozen=True)
class ProcessLine:
    line_id: int | None
    name: str
    sequence: int = 0
    prod_process: ProdProcess | None = None
    work_center: WorkCenter | None = None
    work_center_group: WorkCenterGroup | None = None

    duration_per_cycle: int | None = None
    human_duration: int | None = None
    min_capacity_per_cycle: Decimal | None = None
    max_capacity_per_cycle: Decimal | None = None

    @property
    def process_code(self) -> str | None:
        return self.prod_process.code if self.prod_process is not None else None


@dataclass
class OperationOrder:
    # Owned by the caller; the duration calculator only writes the planned figures.
    order_id: int | None
    name: str
    process_line_id: int | None = None
    qty: Decimal = Decimal(0)
    planned_machine_duration: int | None = None
    planned_human_duration: int | None = None


@dataclass(frozen=True)
class CycleDuration:
    nb_cycles: Decimal
    overhead: int
    machine_duration: int
    human_duration: int
    planned_duration: int


@dataclass
class AuditEntry:
    id: int
    timestamp: str
    category: str
    message: str
    details: str | None = None
