from __future__ import annotations

from contextlib import contextmanager

from nicegui import ui


_THEME_APPLIED = False


def apply_theme() -> None:
    """Apply a lightweight global theme."""
    try:
        ui.colors(
            primary="#2563eb",  # blue-600
            secondary="#0ea5e9",  # sky-500
            positive="#16a34a",  # green-600
            negative="#dc2626",  # red-600
            warning="#f59e0b",  # amber-500
        )
    except Exception:
        # Keep running even if NiceGUI changes the API.
        pass

    ui.add_css(
        """
        body { background: #f8fafc; }
        .pt-container { max-width: 1200px; margin: 0 auto; padding: 16px; }
        .pt-subtitle { color: #475569; }
        .pt-header { border-bottom: 1px solid rgba(15, 23, 42, 0.08); }
        """
    )


def ensure_theme() -> None:
    """Apply theme once, but only when called from within a page context."""
    global _THEME_APPLIED
    if _THEME_APPLIED:
        return
    apply_theme()
    _THEME_APPLIED = True


@contextmanager
def page_container():
    with ui.element("div").classes("pt-container"):
        yield


def render_nav(active: str | None = None, *, title: str = "Routing") -> None:
    ensure_theme()
    active_key = active or "lines"
    sections: list[tuple[str, str, str]] = [
        ("lines", "Process lines", "/"),
        ("groups", "Work center groups", "/groups"),
        ("work_centers", "Work centers", "/work-centers"),
        ("audit", "Audit", "/audit"),
    ]

    with ui.header().classes("pt-header bg-white text-slate-900"):
        with ui.row().classes("w-full items-center justify-between gap-4 px-4 py-2"):
            ui.label(title).classes("text-xl md:text-2xl font-semibold leading-none")
            with ui.row().classes("items-center gap-1"):
                for key, label, path in sections:
                    props = "dense no-caps color=primary" + (" unelevated" if key == active_key else " flat")
                    ui.button(label, on_click=lambda p=path: ui.navigate.to(p)).props(props)


def format_seconds(seconds: int | None) -> str:
    """Render a duration in seconds as H:MM:SS."""
    if seconds is None:
        return ""
    sign = "-" if seconds < 0 else ""
    s = abs(int(seconds))
    return f"{sign}{s // 3600}:{(s % 3600) // 60:02d}:{s % 60:02d}"
