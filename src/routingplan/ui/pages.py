from __future__ import annotations

import inspect
import logging
from decimal import Decimal

from nicegui import ui

from routingplan.core.errors import ProductionError
from routingplan.core.models import ProcessLine, ProdProcess, WorkCenterGroup
from routingplan.core.numeric import to_decimal
from routingplan.core.process_line import ProcessLineService
from routingplan.data.repository import RoutingRepository
from routingplan.ui.widgets import format_seconds, page_container, render_nav

logger = logging.getLogger(__name__)


async def _read_upload(e) -> bytes:
    """Extract uploaded bytes across NiceGUI versions."""
    if hasattr(e, "content"):
        return e.content.read()
    f = getattr(e, "file", None)
    if f is not None and hasattr(f, "read"):
        if inspect.iscoroutinefunction(f.read):
            return await f.read()
        return f.read()
    raise ValueError(f"Could not extract file content. Attributes: {dir(e)}")


def _line_row(line: ProcessLine) -> dict:
    return {
        "line_id": line.line_id,
        "process": line.process_code or "",
        "name": line.name,
        "sequence": line.sequence,
        "work_center": line.work_center.code if line.work_center is not None else "",
        "group": line.work_center_group.code if line.work_center_group is not None else "",
        "duration_per_cycle": format_seconds(line.duration_per_cycle),
        "human_duration": format_seconds(line.human_duration),
        "min_capacity": str(line.min_capacity_per_cycle) if line.min_capacity_per_cycle is not None else "",
        "max_capacity": str(line.max_capacity_per_cycle) if line.max_capacity_per_cycle is not None else "",
    }


def register_pages(repo: RoutingRepository, *, title: str = "Routing") -> None:
    service = ProcessLineService(repo)

    @ui.page("/")
    def process_lines() -> None:
        render_nav(active="lines", title=title)
        with page_container():
            ui.label("Process lines").classes("text-2xl font-semibold")
            ui.label("Assign work center groups from templates and compute planned durations.").classes("pt-subtitle")
            ui.separator()

            lines = repo.list_process_lines()
            ui.table(
                columns=[
                    {"name": "process", "label": "Process", "field": "process", "sortable": True},
                    {"name": "name", "label": "Line", "field": "name", "sortable": True, "align": "left"},
                    {"name": "sequence", "label": "Seq", "field": "sequence", "sortable": True},
                    {"name": "work_center", "label": "Work center", "field": "work_center"},
                    {"name": "group", "label": "Group", "field": "group"},
                    {"name": "duration_per_cycle", "label": "Machine/cycle", "field": "duration_per_cycle"},
                    {"name": "human_duration", "label": "Human/cycle", "field": "human_duration"},
                    {"name": "min_capacity", "label": "Min cap.", "field": "min_capacity"},
                    {"name": "max_capacity", "label": "Max cap.", "field": "max_capacity"},
                ],
                rows=[_line_row(ln) for ln in lines],
                row_key="line_id",
                pagination=20,
            ).classes("w-full").props("dense")

            line_options = {ln.line_id: f"{ln.process_code or '-'} / {ln.name}" for ln in lines}
            templates = repo.list_work_center_groups(templates_only=True)
            template_options = {g.group_id: f"{g.code} - {g.name}" for g in templates}

            with ui.row().classes("w-full gap-6 items-start mt-4"):
                with ui.card().classes("flex-1 min-w-[300px] p-4"):
                    ui.label("New process line").classes("text-lg font-medium text-slate-700 mb-2")
                    process_in = ui.input("Process code").classes("w-full")
                    name_in = ui.input("Line name").classes("w-full")
                    seq_in = ui.number("Sequence", value=0, min=0, step=1).classes("w-full")

                    def create_line() -> None:
                        try:
                            process = None
                            code = str(process_in.value or "").strip()
                            if code:
                                process = repo.upsert_prod_process(ProdProcess(process_id=None, code=code, name=code))
                            repo.save_process_line(
                                ProcessLine(
                                    line_id=None,
                                    name=str(name_in.value or "").strip(),
                                    sequence=int(seq_in.value or 0),
                                    prod_process=process,
                                )
                            )
                        except (ValueError, ProductionError) as ex:
                            ui.notify(str(ex), color="negative")
                            return
                        ui.notify("Process line saved", type="positive")
                        ui.navigate.reload()

                    ui.button("Save", icon="save", on_click=create_line).props("unelevated color=primary")

                with ui.card().classes("flex-1 min-w-[300px] p-4"):
                    ui.label("Assign work center group").classes("text-lg font-medium text-slate-700 mb-2")
                    line_sel = ui.select(line_options, label="Process line").classes("w-full")
                    template_sel = ui.select(template_options, label="Template").classes("w-full")

                    def assign() -> None:
                        if line_sel.value is None or template_sel.value is None:
                            ui.notify("Select a line and a template", color="warning")
                            return
                        try:
                            line = repo.get_process_line(int(line_sel.value))
                            template = repo.get_work_center_group(int(template_sel.value))
                            updated = service.assign_work_center_group(line, template)
                        except (ValueError, ProductionError) as ex:
                            logger.warning("Assignment failed: %s", ex)
                            ui.notify(str(ex), color="negative")
                            return
                        ui.notify(f"Work center {updated.work_center.code} assigned", type="positive")
                        ui.navigate.reload()

                    ui.button("Assign", icon="link", on_click=assign).props("unelevated color=primary")

                with ui.card().classes("flex-1 min-w-[300px] p-4"):
                    ui.label("Cycle duration").classes("text-lg font-medium text-slate-700 mb-2")
                    calc_line_sel = ui.select(line_options, label="Process line").classes("w-full")
                    qty_in = ui.number("Quantity", value=1, min=0, step=1).classes("w-full")
                    result = ui.column().classes("w-full gap-1 mt-2")

                    def compute() -> None:
                        result.clear()
                        if calc_line_sel.value is None:
                            ui.notify("Select a line", color="warning")
                            return
                        try:
                            line = repo.get_process_line(int(calc_line_sel.value))
                            durations = service.compute_cycle_durations(line, to_decimal(qty_in.value, default=Decimal(0)))
                        except (ValueError, ProductionError) as ex:
                            ui.notify(str(ex), color="negative")
                            return
                        with result:
                            ui.label(f"Cycles: {durations.nb_cycles}")
                            ui.label(f"Machine: {format_seconds(durations.machine_duration)}")
                            ui.label(f"Human: {format_seconds(durations.human_duration)}")
                            ui.label(f"Planned: {format_seconds(durations.planned_duration)}").classes("font-semibold")

                    ui.button("Compute", icon="timer", on_click=compute).props("unelevated color=primary")

    @ui.page("/groups")
    def work_center_groups() -> None:
        render_nav(active="groups", title=title)
        with page_container():
            ui.label("Work center groups").classes("text-2xl font-semibold")
            ui.separator()

            groups = repo.list_work_center_groups()
            ui.table(
                columns=[
                    {"name": "code", "label": "Code", "field": "code", "sortable": True},
                    {"name": "name", "label": "Name", "field": "name", "align": "left"},
                    {"name": "template", "label": "Template", "field": "template", "sortable": True},
                    {"name": "origin", "label": "From template", "field": "origin"},
                    {"name": "work_centers", "label": "Work centers", "field": "work_centers", "align": "left"},
                ],
                rows=[
                    {
                        "group_id": g.group_id,
                        "code": g.code,
                        "name": g.name,
                        "template": "yes" if g.is_template else "",
                        "origin": g.template_origin_id or "",
                        "work_centers": ", ".join(sorted(wc.code for wc in g.work_centers)),
                    }
                    for g in groups
                ],
                row_key="group_id",
                pagination=20,
            ).classes("w-full").props("dense")

            work_centers = repo.list_work_centers()
            with ui.card().classes("w-full p-4 mt-4"):
                ui.label("New template").classes("text-lg font-medium text-slate-700 mb-2")
                with ui.row().classes("w-full gap-2"):
                    code_in = ui.input("Code").classes("w-40")
                    name_in = ui.input("Name").classes("flex-1")
                members_sel = ui.select(
                    {wc.work_center_id: f"{wc.code} - {wc.name}" for wc in work_centers},
                    label="Work centers",
                    multiple=True,
                ).classes("w-full")

                def save_template() -> None:
                    selected = set(members_sel.value or [])
                    try:
                        group = repo.save_work_center_group(
                            WorkCenterGroup(
                                group_id=None,
                                code=str(code_in.value or "").strip(),
                                name=str(name_in.value or "").strip(),
                                is_template=True,
                                work_centers=frozenset(wc for wc in work_centers if wc.work_center_id in selected),
                            )
                        )
                    except (ValueError, ProductionError) as ex:
                        ui.notify(str(ex), color="negative")
                        return
                    repo.log_audit("ROUTING", "Create Template", f"Group: {group.code}, Members: {len(group.work_centers)}")
                    ui.notify("Template saved", type="positive")
                    ui.navigate.reload()

                ui.button("Save template", icon="save", on_click=save_template).props("unelevated color=primary")

    @ui.page("/work-centers")
    def work_centers_page() -> None:
        render_nav(active="work_centers", title=title)
        with page_container():
            ui.label("Work centers").classes("text-2xl font-semibold")
            ui.label("Durations in seconds. Import replaces work centers with the same code.").classes("pt-subtitle")
            ui.separator()

            ui.table(
                columns=[
                    {"name": "code", "label": "Code", "field": "code", "sortable": True},
                    {"name": "name", "label": "Name", "field": "name", "align": "left"},
                    {"name": "type", "label": "Type", "field": "type"},
                    {"name": "machine", "label": "Machine", "field": "machine"},
                    {"name": "sequence", "label": "Seq", "field": "sequence", "sortable": True},
                    {"name": "setup", "label": "Start/End/Setup", "field": "setup"},
                    {"name": "cycle", "label": "Machine/Human per cycle", "field": "cycle"},
                    {"name": "capacity", "label": "Capacity min/max", "field": "capacity"},
                ],
                rows=[
                    {
                        "work_center_id": wc.work_center_id,
                        "code": wc.code,
                        "name": wc.name,
                        "type": wc.work_center_type.name.lower(),
                        "machine": wc.machine.code if wc.machine is not None else "",
                        "sequence": wc.sequence,
                        "setup": f"{wc.starting_duration}/{wc.ending_duration}/{wc.setup_duration}",
                        "cycle": f"{wc.duration_per_cycle}/{wc.hr_duration_per_cycle}",
                        "capacity": f"{wc.min_capacity_per_cycle}/{wc.max_capacity_per_cycle}",
                    }
                    for wc in repo.list_work_centers()
                ],
                row_key="work_center_id",
                pagination=20,
            ).classes("w-full").props("dense")

            async def handle_upload(e) -> None:
                try:
                    content = await _read_upload(e)
                    count = repo.import_work_centers_bytes(content=content)
                except (ValueError, ProductionError) as ex:
                    ui.notify(f"Import failed: {ex}", color="negative")
                    return
                ui.notify(f"Imported: {count} work centers", type="positive")
                ui.navigate.reload()

            ui.upload(label="Upload work centers (.xlsx)", on_upload=handle_upload, auto_upload=True).props(
                "accept=.xlsx max-files=1"
            ).classes("mt-4")

    @ui.page("/audit")
    def audit_log() -> None:
        render_nav(active="audit", title=title)
        with page_container():
            ui.label("Audit").classes("text-2xl font-semibold")
            ui.separator()

            rows = [
                {
                    "id": e.id,
                    "timestamp": e.timestamp,
                    "category": e.category,
                    "message": e.message,
                    "details": e.details or "",
                }
                for e in repo.get_recent_audit_entries(limit=500)
            ]

            ui.table(
                columns=[
                    {"name": "timestamp", "label": "Timestamp", "field": "timestamp", "sortable": True},
                    {"name": "category", "label": "Category", "field": "category", "sortable": True},
                    {"name": "message", "label": "Message", "field": "message", "sortable": True, "align": "left"},
                    {"name": "details", "label": "Details", "field": "details", "sortable": False, "align": "left"},
                ],
                rows=rows,
                pagination=20,
            ).classes("w-full").props("dense")
