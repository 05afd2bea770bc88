"""Localized message catalog for production errors.

Templates use positional ``%s`` placeholders so the same argument tuple
renders in every language.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

PROD_PROCESS_LINE_MISSING_WORK_CENTER = "PROD_PROCESS_LINE_MISSING_WORK_CENTER"
WORKCENTER_NO_MACHINE = "WORKCENTER_NO_MACHINE"
WORKCENTER_GROUP_NO_WORKCENTER = "WORKCENTER_GROUP_NO_WORKCENTER"
PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"

_CATALOG: dict[str, dict[str, str]] = {
    "en": {
        PROD_PROCESS_LINE_MISSING_WORK_CENTER: "Please fill the work center in process %s on line %s.",
        WORKCENTER_NO_MACHINE: "Please fill the machine in the work center %s.",
        WORKCENTER_GROUP_NO_WORKCENTER: "The work center group %s does not contain any work center.",
        PERSISTENCE_FAILURE: "Storage error on %s: %s",
    },
    "es": {
        PROD_PROCESS_LINE_MISSING_WORK_CENTER: "Complete el centro de trabajo en el proceso %s, línea %s.",
        WORKCENTER_NO_MACHINE: "Complete la máquina del centro de trabajo %s.",
        WORKCENTER_GROUP_NO_WORKCENTER: "El grupo de centros de trabajo %s no contiene centros de trabajo.",
        PERSISTENCE_FAILURE: "Error de almacenamiento en %s: %s",
    },
}

_current_language = DEFAULT_LANGUAGE


def set_language(language: str | None) -> str:
    """Set the process-wide language; unknown languages fall back to the default."""
    global _current_language
    lang = str(language or "").strip().lower()
    if lang not in _CATALOG:
        logger.warning("Unsupported language %r, using %s", language, DEFAULT_LANGUAGE)
        lang = DEFAULT_LANGUAGE
    _current_language = lang
    return lang


def get_language() -> str:
    return _current_language


def get_message(code: str, *args: object, language: str | None = None) -> str:
    lang = language or _current_language
    template = _CATALOG.get(lang, {}).get(code) or _CATALOG[DEFAULT_LANGUAGE].get(code)
    if template is None:
        return code
    return template % tuple(str(a) for a in args)
