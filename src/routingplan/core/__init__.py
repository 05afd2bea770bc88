"""Core package.

Domain models, the work center accessor and the process line service
(work center group assignment and cycle duration computation).
"""

from routingplan.core.errors import (
    EmptyWorkCenterGroupError,
    MissingMachineError,
    MissingWorkCenterError,
    PersistenceError,
    ProductionError,
)
from routingplan.core.models import (
    CycleDuration,
    Machine,
    OperationOrder,
    ProcessLine,
    ProdProcess,
    WorkCenter,
    WorkCenterGroup,
    WorkCenterType,
)
from routingplan.core.process_line import ProcessLineService
from routingplan.core.work_center import WorkCenterService

__all__ = [
    "CycleDuration",
    "EmptyWorkCenterGroupError",
    "Machine",
    "MissingMachineError",
    "MissingWorkCenterError",
    "OperationOrder",
    "PersistenceError",
    "ProcessLine",
    "ProcessLineService",
    "ProdProcess",
    "ProductionError",
    "WorkCenter",
    "WorkCenterGroup",
    "WorkCenterService",
    "WorkCenterType",
]
