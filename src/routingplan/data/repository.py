"""Routing repository.

Persistence for machines, work centers, work center groups, process lines and
operation orders, plus general config and the audit log.

Every write method accepts an optional open connection so callers can group
several writes into one transaction (see ``transaction``).
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from decimal import Decimal

from routingplan.core.errors import PersistenceError
from routingplan.core.models import (
    AuditEntry,
    Machine,
    OperationOrder,
    ProcessLine,
    ProdProcess,
    WorkCenter,
    WorkCenterGroup,
    WorkCenterType,
)
from routingplan.core.numeric import to_decimal
from routingplan.data.db import Db
from routingplan.data.excel_io import (
    coerce_decimal,
    is_blank,
    normalize_columns,
    parse_int_or_default,
    parse_work_center_type,
    read_excel_bytes,
)

logger = logging.getLogger(__name__)

_WORK_CENTER_SELECT = """
    SELECT wc.work_center_id, wc.code, wc.name, wc.work_center_type, wc.sequence,
           wc.starting_duration, wc.ending_duration, wc.setup_duration,
           wc.duration_per_cycle, wc.hr_duration_per_cycle,
           wc.min_capacity_per_cycle, wc.max_capacity_per_cycle,
           m.machine_id AS m_id, m.code AS m_code, m.name AS m_name
    FROM work_center wc
    LEFT JOIN machine m ON m.machine_id = wc.machine_id
"""


def _opt_decimal(value) -> Decimal | None:
    return None if value is None else to_decimal(value)


def _opt_text(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class RoutingRepository:
    """Routing configuration access backed by sqlite."""

    def __init__(self, db: Db) -> None:
        self.db = db

    # ---------- Connections ----------

    @contextmanager
    def transaction(self):
        """All-or-nothing unit of work; storage failures surface as PersistenceError."""
        try:
            with self.db.connect() as con:
                yield con
        except sqlite3.Error as exc:
            logger.exception("Transaction rolled back")
            raise PersistenceError("transaction", exc) from exc

    @contextmanager
    def _use(self, con: sqlite3.Connection | None, entity: str):
        if con is not None:
            try:
                yield con
            except sqlite3.Error as exc:
                raise PersistenceError(entity, exc) from exc
            return
        try:
            with self.db.connect() as own:
                yield own
        except sqlite3.Error as exc:
            raise PersistenceError(entity, exc) from exc

    # ---------- Audit & Logging ----------

    def log_audit(self, category: str, message: str, details: str | None = None) -> None:
        """Record a business event in the audit log."""
        try:
            with self.db.connect() as con:
                con.execute(
                    "INSERT INTO core_audit_log (category, message, details) VALUES (?, ?, ?)",
                    (category, message, details),
                )
        except sqlite3.Error:
            # Audit failures must not undo the business operation that already committed.
            logger.exception("Failed to write audit log")

    def get_recent_audit_entries(self, limit: int = 100) -> list[AuditEntry]:
        with self.db.connect() as con:
            rows = con.execute(
                "SELECT * FROM core_audit_log ORDER BY id DESC LIMIT ?", (int(limit),)
            ).fetchall()
        return [
            AuditEntry(
                id=row["id"],
                timestamp=row["timestamp"],
                category=row["category"],
                message=row["message"],
                details=row["details"],
            )
            for row in rows
        ]

    # ---------- Configuration ----------

    def get_config(self, *, key: str, default: str | None = None) -> str | None:
        key = str(key).strip()
        if not key:
            raise ValueError("config key is empty")
        with self.db.connect() as con:
            row = con.execute("SELECT config_value FROM core_config WHERE config_key = ?", (key,)).fetchone()
        if row is None:
            return default
        return str(row[0])

    def set_config(self, *, key: str, value: str) -> None:
        key = str(key).strip()
        if not key:
            raise ValueError("config key is empty")
        old_val = self.get_config(key=key, default="(none)")
        with self.db.connect() as con:
            con.execute(
                "INSERT INTO core_config(config_key, config_value, updated_at) VALUES(?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(config_key) DO UPDATE SET config_value=excluded.config_value, updated_at=CURRENT_TIMESTAMP",
                (key, str(value)),
            )
        self.log_audit("CONFIG", f"Updated '{key}'", f"From '{old_val}' to '{value}'")

    # ---------- Machines ----------

    def upsert_machine(self, machine: Machine, *, con: sqlite3.Connection | None = None) -> Machine:
        code = str(machine.code).strip()
        if not code:
            raise ValueError("machine code is empty")
        with self._use(con, "machine") as c:
            c.execute(
                "INSERT INTO machine(code, name) VALUES(?, ?) "
                "ON CONFLICT(code) DO UPDATE SET name=excluded.name",
                (code, str(machine.name or code)),
            )
            row = c.execute("SELECT machine_id, code, name FROM machine WHERE code = ?", (code,)).fetchone()
        return Machine(machine_id=int(row["machine_id"]), code=str(row["code"]), name=str(row["name"]))

    # ---------- Work centers ----------

    @staticmethod
    def _row_to_work_center(r: sqlite3.Row) -> WorkCenter:
        machine = None
        if r["m_id"] is not None:
            machine = Machine(machine_id=int(r["m_id"]), code=str(r["m_code"]), name=str(r["m_name"]))
        return WorkCenter(
            work_center_id=int(r["work_center_id"]),
            code=str(r["code"]),
            name=str(r["name"]),
            work_center_type=WorkCenterType(int(r["work_center_type"])),
            machine=machine,
            sequence=int(r["sequence"] or 0),
            starting_duration=int(r["starting_duration"] or 0),
            ending_duration=int(r["ending_duration"] or 0),
            setup_duration=int(r["setup_duration"] or 0),
            duration_per_cycle=int(r["duration_per_cycle"] or 0),
            hr_duration_per_cycle=int(r["hr_duration_per_cycle"] or 0),
            min_capacity_per_cycle=to_decimal(r["min_capacity_per_cycle"], default=1),
            max_capacity_per_cycle=to_decimal(r["max_capacity_per_cycle"], default=1),
        )

    def upsert_work_center(self, work_center: WorkCenter, *, con: sqlite3.Connection | None = None) -> WorkCenter:
        """Insert or update a work center by code; an unsaved machine is saved first."""
        code = str(work_center.code).strip()
        if not code:
            raise ValueError("work center code is empty")
        for col_name, value in (
            ("starting_duration", work_center.starting_duration),
            ("ending_duration", work_center.ending_duration),
            ("setup_duration", work_center.setup_duration),
        ):
            if int(value) < 0:
                raise ValueError(f"{col_name} cannot be negative")

        with self._use(con, "work center") as c:
            machine_id = None
            if work_center.machine is not None:
                machine = work_center.machine
                if machine.machine_id is None:
                    machine = self.upsert_machine(machine, con=c)
                machine_id = machine.machine_id

            c.execute(
                """
                INSERT INTO work_center(
                    code, name, work_center_type, machine_id, sequence,
                    starting_duration, ending_duration, setup_duration,
                    duration_per_cycle, hr_duration_per_cycle,
                    min_capacity_per_cycle, max_capacity_per_cycle
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(code) DO UPDATE SET
                    name=excluded.name,
                    work_center_type=excluded.work_center_type,
                    machine_id=excluded.machine_id,
                    sequence=excluded.sequence,
                    starting_duration=excluded.starting_duration,
                    ending_duration=excluded.ending_duration,
                    setup_duration=excluded.setup_duration,
                    duration_per_cycle=excluded.duration_per_cycle,
                    hr_duration_per_cycle=excluded.hr_duration_per_cycle,
                    min_capacity_per_cycle=excluded.min_capacity_per_cycle,
                    max_capacity_per_cycle=excluded.max_capacity_per_cycle,
                    updated_at=CURRENT_TIMESTAMP
                """,
                (
                    code,
                    str(work_center.name or code),
                    int(work_center.work_center_type),
                    machine_id,
                    int(work_center.sequence),
                    int(work_center.starting_duration),
                    int(work_center.ending_duration),
                    int(work_center.setup_duration),
                    int(work_center.duration_per_cycle),
                    int(work_center.hr_duration_per_cycle),
                    str(work_center.min_capacity_per_cycle),
                    str(work_center.max_capacity_per_cycle),
                ),
            )
            row = c.execute(_WORK_CENTER_SELECT + " WHERE wc.code = ?", (code,)).fetchone()
        return self._row_to_work_center(row)

    def get_work_center(self, work_center_id: int, *, con: sqlite3.Connection | None = None) -> WorkCenter | None:
        with self._use(con, "work center") as c:
            row = c.execute(_WORK_CENTER_SELECT + " WHERE wc.work_center_id = ?", (int(work_center_id),)).fetchone()
        return self._row_to_work_center(row) if row is not None else None

    def get_work_center_by_code(self, code: str) -> WorkCenter | None:
        with self.db.connect() as con:
            row = con.execute(_WORK_CENTER_SELECT + " WHERE wc.code = ?", (str(code).strip(),)).fetchone()
        return self._row_to_work_center(row) if row is not None else None

    def list_work_centers(self) -> list[WorkCenter]:
        with self.db.connect() as con:
            rows = con.execute(_WORK_CENTER_SELECT + " ORDER BY wc.sequence, wc.code").fetchall()
        return [self._row_to_work_center(r) for r in rows]

    # ---------- Work center groups ----------

    def save_work_center_group(
        self, group: WorkCenterGroup, *, con: sqlite3.Connection | None = None
    ) -> WorkCenterGroup:
        """Insert (no id) or update a group and replace its memberships."""
        if not str(group.code).strip():
            raise ValueError("work center group code is empty")
        with self._use(con, "work center group") as c:
            if group.group_id is None:
                cur = c.execute(
                    "INSERT INTO work_center_group(code, name, is_template, template_origin_id) VALUES(?, ?, ?, ?)",
                    (str(group.code).strip(), str(group.name or group.code), int(bool(group.is_template)), group.template_origin_id),
                )
                group_id = int(cur.lastrowid)
            else:
                group_id = int(group.group_id)
                c.execute(
                    "UPDATE work_center_group SET code = ?, name = ?, is_template = ?, template_origin_id = ? WHERE group_id = ?",
                    (str(group.code).strip(), str(group.name or group.code), int(bool(group.is_template)), group.template_origin_id, group_id),
                )
                c.execute("DELETE FROM work_center_group_member WHERE group_id = ?", (group_id,))

            for wc in group.work_centers:
                if wc.work_center_id is None:
                    wc = self.upsert_work_center(wc, con=c)
                c.execute(
                    "INSERT OR IGNORE INTO work_center_group_member(group_id, work_center_id) VALUES(?, ?)",
                    (group_id, int(wc.work_center_id)),
                )
            saved = self.get_work_center_group(group_id, con=c)
        return saved

    def copy_work_center_group(
        self, template: WorkCenterGroup, *, con: sqlite3.Connection | None = None
    ) -> WorkCenterGroup:
        """Persist a storage-independent, non-template copy of ``template``."""
        if template.group_id is None:
            raise ValueError("cannot copy a work center group that was never saved")
        copy = WorkCenterGroup.instantiate_from_template(template)
        return self.save_work_center_group(copy, con=con)

    def add_work_center_to_group(self, *, group_id: int, work_center_id: int) -> None:
        with self._use(None, "work center group") as con:
            con.execute(
                "INSERT OR IGNORE INTO work_center_group_member(group_id, work_center_id) VALUES(?, ?)",
                (int(group_id), int(work_center_id)),
            )

    def get_work_center_group(
        self, group_id: int, *, con: sqlite3.Connection | None = None
    ) -> WorkCenterGroup | None:
        with self._use(con, "work center group") as c:
            row = c.execute(
                "SELECT group_id, code, name, is_template, template_origin_id FROM work_center_group WHERE group_id = ?",
                (int(group_id),),
            ).fetchone()
            if row is None:
                return None
            members = c.execute(
                _WORK_CENTER_SELECT
                + " JOIN work_center_group_member g ON g.work_center_id = wc.work_center_id WHERE g.group_id = ?",
                (int(group_id),),
            ).fetchall()
        return WorkCenterGroup(
            group_id=int(row["group_id"]),
            code=str(row["code"]),
            name=str(row["name"]),
            is_template=bool(int(row["is_template"] or 0)),
            template_origin_id=(int(row["template_origin_id"]) if row["template_origin_id"] is not None else None),
            work_centers=frozenset(self._row_to_work_center(m) for m in members),
        )

    def list_work_center_groups(self, *, templates_only: bool = False) -> list[WorkCenterGroup]:
        sql = "SELECT group_id FROM work_center_group"
        if templates_only:
            sql += " WHERE is_template = 1"
        with self.db.connect() as con:
            ids = [int(r[0]) for r in con.execute(sql + " ORDER BY code, group_id").fetchall()]
            return [self.get_work_center_group(gid, con=con) for gid in ids]

    # ---------- Processes & lines ----------

    def upsert_prod_process(self, process: ProdProcess, *, con: sqlite3.Connection | None = None) -> ProdProcess:
        code = str(process.code).strip()
        if not code:
            raise ValueError("process code is empty")
        with self._use(con, "process") as c:
            c.execute(
                "INSERT INTO prod_process(code, name) VALUES(?, ?) ON CONFLICT(code) DO UPDATE SET name=excluded.name",
                (code, str(process.name or "")),
            )
            row = c.execute("SELECT process_id, code, name FROM prod_process WHERE code = ?", (code,)).fetchone()
        return ProdProcess(process_id=int(row[0]), code=str(row[1]), name=str(row[2]))

    def save_process_line(self, line: ProcessLine, *, con: sqlite3.Connection | None = None) -> ProcessLine:
        """Idempotent upsert of a process line; returns the line as stored."""
        if not str(line.name or "").strip():
            raise ValueError("process line name is empty")
        with self._use(con, "process line") as c:
            process = line.prod_process
            if process is not None and process.process_id is None:
                process = self.upsert_prod_process(process, con=c)
            work_center = line.work_center
            if work_center is not None and work_center.work_center_id is None:
                work_center = self.upsert_work_center(work_center, con=c)
            group = line.work_center_group
            if group is not None and group.group_id is None:
                group = self.save_work_center_group(group, con=c)

            values = (
                process.process_id if process is not None else None,
                str(line.name).strip(),
                int(line.sequence),
                work_center.work_center_id if work_center is not None else None,
                group.group_id if group is not None else None,
                line.duration_per_cycle,
                line.human_duration,
                _opt_text(line.min_capacity_per_cycle),
                _opt_text(line.max_capacity_per_cycle),
            )
            if line.line_id is None:
                cur = c.execute(
                    """
                    INSERT INTO process_line(
                        process_id, name, sequence, work_center_id, work_center_group_id,
                        duration_per_cycle, human_duration, min_capacity_per_cycle, max_capacity_per_cycle
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
                line_id = int(cur.lastrowid)
            else:
                line_id = int(line.line_id)
                cur = c.execute(
                    """
                    UPDATE process_line SET
                        process_id = ?, name = ?, sequence = ?, work_center_id = ?, work_center_group_id = ?,
                        duration_per_cycle = ?, human_duration = ?,
                        min_capacity_per_cycle = ?, max_capacity_per_cycle = ?,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE line_id = ?
                    """,
                    values + (line_id,),
                )
                if cur.rowcount == 0:
                    c.execute(
                        """
                        INSERT INTO process_line(
                            process_id, name, sequence, work_center_id, work_center_group_id,
                            duration_per_cycle, human_duration, min_capacity_per_cycle, max_capacity_per_cycle,
                            line_id
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        values + (line_id,),
                    )
            saved = self.get_process_line(line_id, con=c)
        return saved

    def get_process_line(self, line_id: int, *, con: sqlite3.Connection | None = None) -> ProcessLine | None:
        with self._use(con, "process line") as c:
            row = c.execute(
                """
                SELECT l.line_id, l.name, l.sequence, l.work_center_id, l.work_center_group_id,
                       l.duration_per_cycle, l.human_duration, l.min_capacity_per_cycle, l.max_capacity_per_cycle,
                       p.process_id, p.code AS p_code, p.name AS p_name
                FROM process_line l
                LEFT JOIN prod_process p ON p.process_id = l.process_id
                WHERE l.line_id = ?
                """,
                (int(line_id),),
            ).fetchone()
            if row is None:
                return None
            work_center = None
            if row["work_center_id"] is not None:
                work_center = self.get_work_center(int(row["work_center_id"]), con=c)
            group = None
            if row["work_center_group_id"] is not None:
                group = self.get_work_center_group(int(row["work_center_group_id"]), con=c)

        process = None
        if row["process_id"] is not None:
            process = ProdProcess(process_id=int(row["process_id"]), code=str(row["p_code"]), name=str(row["p_name"] or ""))
        return ProcessLine(
            line_id=int(row["line_id"]),
            name=str(row["name"]),
            sequence=int(row["sequence"] or 0),
            prod_process=process,
            work_center=work_center,
            work_center_group=group,
            duration_per_cycle=(int(row["duration_per_cycle"]) if row["duration_per_cycle"] is not None else None),
            human_duration=(int(row["human_duration"]) if row["human_duration"] is not None else None),
            min_capacity_per_cycle=_opt_decimal(row["min_capacity_per_cycle"]),
            max_capacity_per_cycle=_opt_decimal(row["max_capacity_per_cycle"]),
        )

    def list_process_lines(self, *, process_id: int | None = None) -> list[ProcessLine]:
        sql = "SELECT line_id FROM process_line"
        params: tuple = ()
        if process_id is not None:
            sql += " WHERE process_id = ?"
            params = (int(process_id),)
        with self.db.connect() as con:
            ids = [int(r[0]) for r in con.execute(sql + " ORDER BY process_id, sequence, line_id", params).fetchall()]
            return [self.get_process_line(lid, con=con) for lid in ids]

    # ---------- Operation orders ----------

    def save_operation_order(
        self, order: OperationOrder, *, con: sqlite3.Connection | None = None
    ) -> OperationOrder:
        with self._use(con, "operation order") as c:
            values = (
                str(order.name),
                order.process_line_id,
                str(to_decimal(order.qty)),
                order.planned_machine_duration,
                order.planned_human_duration,
            )
            if order.order_id is None:
                cur = c.execute(
                    "INSERT INTO operation_order(name, process_line_id, qty, planned_machine_duration, planned_human_duration) "
                    "VALUES(?, ?, ?, ?, ?)",
                    values,
                )
                order.order_id = int(cur.lastrowid)
            else:
                c.execute(
                    "UPDATE operation_order SET name = ?, process_line_id = ?, qty = ?, "
                    "planned_machine_duration = ?, planned_human_duration = ?, updated_at = CURRENT_TIMESTAMP "
                    "WHERE order_id = ?",
                    values + (int(order.order_id),),
                )
        return order

    def get_operation_order(self, order_id: int) -> OperationOrder | None:
        with self.db.connect() as con:
            row = con.execute(
                "SELECT order_id, name, process_line_id, qty, planned_machine_duration, planned_human_duration "
                "FROM operation_order WHERE order_id = ?",
                (int(order_id),),
            ).fetchone()
        if row is None:
            return None
        return OperationOrder(
            order_id=int(row["order_id"]),
            name=str(row["name"]),
            process_line_id=(int(row["process_line_id"]) if row["process_line_id"] is not None else None),
            qty=to_decimal(row["qty"]),
            planned_machine_duration=row["planned_machine_duration"],
            planned_human_duration=row["planned_human_duration"],
        )

    # ---------- Excel Import ----------

    def import_work_centers_bytes(self, *, content: bytes) -> int:
        """Import work centers (and their machines) from an .xlsx sheet.

        Expected columns: code, name, type, machine_code, machine_name, sequence,
        starting_duration, ending_duration, setup_duration, duration_per_cycle,
        hr_duration_per_cycle, min_capacity_per_cycle, max_capacity_per_cycle.
        Only ``code`` is required. The whole sheet is rejected on the first bad row.
        """
        size_kb = len(content) / 1024
        self.log_audit("DATA_LOAD", "Importing WORK_CENTERS", f"Size: {size_kb:.1f} KB")

        df = normalize_columns(read_excel_bytes(content))
        if "code" not in df.columns:
            raise ValueError("missing column: code")

        count = 0
        with self.transaction() as con:
            for idx, rec in enumerate(df.to_dict("records"), start=2):
                if is_blank(rec.get("code")):
                    continue
                try:
                    code = str(rec["code"]).strip()
                    machine = None
                    if not is_blank(rec.get("machine_code")):
                        m_code = str(rec["machine_code"]).strip()
                        m_name = rec.get("machine_name")
                        machine = Machine(machine_id=None, code=m_code, name=m_code if is_blank(m_name) else str(m_name).strip())
                    name = rec.get("name")
                    wc = WorkCenter(
                        work_center_id=None,
                        code=code,
                        name=code if is_blank(name) else str(name).strip(),
                        work_center_type=parse_work_center_type(rec.get("type")),
                        machine=machine,
                        sequence=parse_int_or_default(rec.get("sequence"), field="sequence"),
                        starting_duration=parse_int_or_default(rec.get("starting_duration"), field="starting_duration"),
                        ending_duration=parse_int_or_default(rec.get("ending_duration"), field="ending_duration"),
                        setup_duration=parse_int_or_default(rec.get("setup_duration"), field="setup_duration"),
                        duration_per_cycle=parse_int_or_default(rec.get("duration_per_cycle"), field="duration_per_cycle"),
                        hr_duration_per_cycle=parse_int_or_default(
                            rec.get("hr_duration_per_cycle"), field="hr_duration_per_cycle"
                        ),
                        min_capacity_per_cycle=coerce_decimal(rec.get("min_capacity_per_cycle"), default=Decimal(1)),
                        max_capacity_per_cycle=coerce_decimal(rec.get("max_capacity_per_cycle"), default=Decimal(1)),
                    )
                except ValueError as exc:
                    raise ValueError(f"row {idx}: {exc}") from exc
                self.upsert_work_center(wc, con=con)
                count += 1

        logger.info("Imported %d work centers", count)
        self.log_audit("DATA_LOAD", "Work centers imported", f"Rows: {count}")
        return count
