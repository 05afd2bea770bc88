from __future__ import annotations

from routingplan.core import messages

# Trace-back categories, kept numeric so callers can route them.
CATEGORY_MISSING_FIELD = 1
CATEGORY_INCONSISTENCY = 5


class ProductionError(Exception):
    """Base domain error carrying a message code and its positional arguments."""

    code: str = ""
    category: int = CATEGORY_INCONSISTENCY

    def __init__(self, *args: object) -> None:
        self.message_args = args
        super().__init__(self.render())

    def render(self, language: str | None = None) -> str:
        return messages.get_message(self.code, *self.message_args, language=language)

    @property
    def message(self) -> str:
        return str(self)


class MissingWorkCenterError(ProductionError):
    code = messages.PROD_PROCESS_LINE_MISSING_WORK_CENTER
    category = CATEGORY_INCONSISTENCY

    def __init__(self, process_code: str | None, line_name: str) -> None:
        self.process_code = process_code
        self.line_name = line_name
        super().__init__(process_code if process_code is not None else "null", line_name)


class MissingMachineError(ProductionError):
    code = messages.WORKCENTER_NO_MACHINE
    category = CATEGORY_MISSING_FIELD

    def __init__(self, work_center_name: str) -> None:
        self.work_center_name = work_center_name
        super().__init__(work_center_name)


class EmptyWorkCenterGroupError(ProductionError):
    code = messages.WORKCENTER_GROUP_NO_WORKCENTER
    category = CATEGORY_MISSING_FIELD

    def __init__(self, group_name: str) -> None:
        self.group_name = group_name
        super().__init__(group_name)


class PersistenceError(ProductionError):
    code = messages.PERSISTENCE_FAILURE

    def __init__(self, entity: str, cause: BaseException) -> None:
        self.entity = entity
        self.cause = cause
        super().__init__(entity, cause)
