from __future__ import annotations


from contextlib import contextmanager
import sqlite3
from pathlib import Path


class Db:
    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connect(self):
        con = sqlite3.connect(self.path, timeout=20.0)
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA foreign_keys=ON;")
        try:
            yield con
            con.commit()
        except Exception:
            con.rollback()
            raise
        finally:
            con.close()

    def ensure_schema(self) -> None:
        con = sqlite3.connect(self.path, timeout=10.0)
        try:
            con.execute("PRAGMA journal_mode=WAL;")
            con.execute("PRAGMA foreign_keys=ON;")

            con.executescript(
                """
                CREATE TABLE IF NOT EXISTS core_audit_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL DEFAULT(datetime('now', 'localtime')),
                    category TEXT NOT NULL,
                    message TEXT NOT NULL,
                    details TEXT
                );

                CREATE TABLE IF NOT EXISTS core_config (
                    config_key TEXT PRIMARY KEY,
                    config_value TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS machine (
                    machine_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );

                -- Durations in seconds, capacities as decimal text (exact)
                CREATE TABLE IF NOT EXISTS work_center (
                    work_center_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    work_center_type INTEGER NOT NULL DEFAULT 2 CHECK(work_center_type IN (1, 2, 3)),
                    machine_id INTEGER,
                    sequence INTEGER NOT NULL DEFAULT 0,
                    starting_duration INTEGER NOT NULL DEFAULT 0,
                    ending_duration INTEGER NOT NULL DEFAULT 0,
                    setup_duration INTEGER NOT NULL DEFAULT 0,
                    duration_per_cycle INTEGER NOT NULL DEFAULT 0,
                    hr_duration_per_cycle INTEGER NOT NULL DEFAULT 0,
                    min_capacity_per_cycle TEXT NOT NULL DEFAULT '1',
                    max_capacity_per_cycle TEXT NOT NULL DEFAULT '1',
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(machine_id) REFERENCES machine(machine_id)
                );

                CREATE TABLE IF NOT EXISTS work_center_group (
                    group_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL,
                    name TEXT NOT NULL,
                    is_template INTEGER NOT NULL DEFAULT 0,
                    template_origin_id INTEGER,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(template_origin_id) REFERENCES work_center_group(group_id)
                );

                CREATE TABLE IF NOT EXISTS work_center_group_member (
                    group_id INTEGER NOT NULL,
                    work_center_id INTEGER NOT NULL,
                    PRIMARY KEY(group_id, work_center_id),
                    FOREIGN KEY(group_id) REFERENCES work_center_group(group_id) ON DELETE CASCADE,
                    FOREIGN KEY(work_center_id) REFERENCES work_center(work_center_id)
                );

                CREATE TABLE IF NOT EXISTS prod_process (
                    process_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS process_line (
                    line_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    process_id INTEGER,
                    name TEXT NOT NULL,
                    sequence INTEGER NOT NULL DEFAULT 0,
                    work_center_id INTEGER,
                    work_center_group_id INTEGER,
                    duration_per_cycle INTEGER,
                    human_duration INTEGER,
                    min_capacity_per_cycle TEXT,
                    max_capacity_per_cycle TEXT,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(process_id) REFERENCES prod_process(process_id),
                    FOREIGN KEY(work_center_id) REFERENCES work_center(work_center_id),
                    FOREIGN KEY(work_center_group_id) REFERENCES work_center_group(group_id)
                );

                CREATE TABLE IF NOT EXISTS operation_order (
                    order_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    process_line_id INTEGER,
                    qty TEXT NOT NULL DEFAULT '0',
                    planned_machine_duration INTEGER,
                    planned_human_duration INTEGER,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(process_line_id) REFERENCES process_line(line_id)
                );

                CREATE INDEX IF NOT EXISTS idx_process_line_process ON process_line(process_id);
                CREATE INDEX IF NOT EXISTS idx_group_template ON work_center_group(is_template);
                """
            )
            con.commit()
        finally:
            con.close()
