from __future__ import annotations

import pytest

from routingplan.core import messages
from routingplan.core.errors import MissingMachineError, MissingWorkCenterError


@pytest.fixture(autouse=True)
def reset_language():
    yield
    messages.set_language(messages.DEFAULT_LANGUAGE)


def test_messages_render_positional_arguments():
    text = messages.get_message(messages.PROD_PROCESS_LINE_MISSING_WORK_CENTER, "PP-01", "Cutting")
    assert text == "Please fill the work center in process PP-01 on line Cutting."


def test_language_switch_applies_to_new_errors():
    messages.set_language("es")
    err = MissingMachineError("Torno")
    assert str(err) == "Complete la máquina del centro de trabajo Torno."
    assert err.render(language="en") == "Please fill the machine in the work center Torno."


def test_unknown_language_falls_back_to_default():
    assert messages.set_language("xx") == messages.DEFAULT_LANGUAGE
    assert messages.get_language() == "en"


def test_unknown_code_renders_the_code():
    assert messages.get_message("NOT_A_CODE", "a") == "NOT_A_CODE"


def test_errors_keep_structured_arguments():
    err = MissingWorkCenterError("PP-02", "Drilling")
    assert err.code == messages.PROD_PROCESS_LINE_MISSING_WORK_CENTER
    assert err.message_args == ("PP-02", "Drilling")
    assert err.message == str(err)
