from __future__ import annotations

import pytest

from servercfg.kernel.errors import WizardStateError
from servercfg.wizard import (
    Step,
    ValidationErrorKind,
    WizardDefinition,
    WizardEngine,
    WizardState,
)


def _definition(*steps: Step) -> WizardDefinition:
    return WizardDefinition(name="sample", title="Sample", steps=tuple(steps))


def test_port_rejected_then_accepted():
    engine = WizardEngine()
    engine.start(_definition(Step("port", "SSH port", kind="port")))

    rejected = engine.submit_input("99999")
    assert not rejected.accepted
    assert rejected.error is not None
    assert rejected.error.kind == ValidationErrorKind.FORMAT
    assert engine.state == WizardState.RUNNING
    assert engine.current_step().field_name == "port"

    accepted = engine.submit_input("443")
    assert accepted.accepted
    assert engine.state == WizardState.REVIEWING
    assert engine.review() == {"port": "443"}


def test_end_to_end_confirm_returns_fields():
    events = []
    engine = WizardEngine(event_sink=lambda event_type, payload: events.append(event_type))
    engine.start(_definition(Step("port", "SSH port", kind="port")))

    assert not engine.submit_input("abc").accepted
    assert engine.submit_input("22").accepted
    assert engine.confirm(True) == WizardState.CONFIRMED
    assert engine.confirmed_fields() == {"port": "22"}
    assert events == [
        "wizard.started",
        "wizard.step.rejected",
        "wizard.step.accepted",
        "wizard.reviewing",
        "wizard.confirmed",
    ]


def test_decline_at_review_discards_fields():
    engine = WizardEngine()
    engine.start(_definition(Step("port", "SSH port", kind="port")))
    engine.submit_input("22")

    assert engine.confirm(False) == WizardState.CANCELLED
    assert engine.session.fields == {}
    with pytest.raises(WizardStateError):
        engine.confirmed_fields()


def test_cancel_mid_run_discards_fields():
    engine = WizardEngine()
    engine.start(
        _definition(
            Step("domain", "Domain", kind="domain"),
            Step("email", "Email", kind="email"),
        )
    )
    engine.submit_input("example.com")
    engine.cancel()

    assert engine.state == WizardState.CANCELLED
    assert engine.session.fields == {}


def test_required_default_and_optional():
    engine = WizardEngine()
    engine.start(
        _definition(
            Step("name", "Name"),
            Step("port", "Port", kind="port", default_value="22"),
            Step("note", "Note", required=False),
        )
    )

    result = engine.submit_input("   ")
    assert result.error.kind == ValidationErrorKind.REQUIRED

    engine.submit_input("web01")
    assert engine.submit_input("").value == "22"
    assert engine.submit_input("").value == ""
    assert engine.review() == {"name": "web01", "port": "22", "note": ""}


def test_choice_step_stores_option_label():
    engine = WizardEngine()
    engine.start(
        _definition(Step("level", "Level", kind="choice", options=("Basic", "Standard", "Maximum")))
    )

    assert engine.submit_input("x").error.kind == ValidationErrorKind.FORMAT
    assert engine.submit_input("4").error.kind == ValidationErrorKind.OUT_OF_RANGE
    assert engine.submit_input("0").error.kind == ValidationErrorKind.OUT_OF_RANGE
    assert engine.submit_input("2").value == "Standard"


def test_conditional_step_is_skipped():
    engine = WizardEngine()
    engine.start(
        _definition(
            Step("static_ip", "Static IP?", kind="boolean"),
            Step("ip_address", "Address", kind="ipv4", when=lambda f: f.get("static_ip") == "y"),
            Step("hostname", "Hostname"),
        )
    )

    engine.submit_input("n")
    assert engine.current_step().field_name == "hostname"
    assert engine.progress().total_steps == 2
    engine.submit_input("web01")
    assert engine.review() == {"static_ip": "n", "hostname": "web01"}


def test_back_reopens_previous_step():
    engine = WizardEngine()
    engine.start(_definition(Step("a", "A"), Step("b", "B")))
    engine.submit_input("one")
    engine.submit_input("two")
    assert engine.state == WizardState.REVIEWING

    step = engine.back()
    assert step.field_name == "b"
    assert engine.state == WizardState.RUNNING
    assert "b" not in engine.session.fields
    engine.submit_input("three")
    assert engine.review() == {"a": "one", "b": "three"}


def test_progress_counts_answered_steps():
    engine = WizardEngine()
    engine.start(_definition(Step("a", "A"), Step("b", "B"), Step("c", "C"), Step("d", "D")))
    assert engine.progress().step_number == 1
    engine.submit_input("x")
    progress = engine.progress()
    assert (progress.step_number, progress.total_steps, progress.percentage) == (2, 4, 25)


def test_invalid_operations_raise_state_error():
    engine = WizardEngine()
    assert engine.state == WizardState.CREATED
    with pytest.raises(WizardStateError):
        engine.submit_input("x")

    engine.start(_definition(Step("a", "A")))
    with pytest.raises(WizardStateError):
        engine.confirm(True)
    with pytest.raises(WizardStateError):
        engine.start(_definition(Step("b", "B")))

    engine.submit_input("x")
    with pytest.raises(WizardStateError):
        engine.submit_input("y")


def test_failing_event_sink_is_ignored():
    def sink(event_type, payload):
        raise RuntimeError("sink down")

    engine = WizardEngine(event_sink=sink)
    engine.start(_definition(Step("a", "A")))
    assert engine.submit_input("x").accepted


@pytest.mark.parametrize("raw", ["²", "١", "1.5", "-1"])
def test_choice_rejects_non_ascii_or_non_integer_numbers(raw: str):
    engine = WizardEngine()
    engine.start(_definition(Step("pick", "Pick", kind="choice", options=("A", "B"))))

    result = engine.submit_input(raw)
    assert not result.accepted
    assert result.error.kind == ValidationErrorKind.FORMAT
    assert engine.state == WizardState.RUNNING
    assert engine.submit_input("2").value == "B"


def test_secret_values_keep_surrounding_spaces():
    engine = WizardEngine()
    engine.start(
        _definition(
            Step("admin_password", "Password", kind="password"),
            Step("auth_key", "Key", required=False, sensitive=True),
            Step("hostname", "Hostname"),
        )
    )

    assert engine.submit_input("  pass word  ").value == "  pass word  "
    assert engine.submit_input("   ").value == ""
    assert engine.submit_input("  web01  ").value == "web01"
    assert engine.review() == {"admin_password": "  pass word  ", "auth_key": "", "hostname": "web01"}


def test_blank_secret_is_required():
    engine = WizardEngine()
    engine.start(_definition(Step("admin_password", "Password", kind="password")))

    result = engine.submit_input("    ")
    assert result.error.kind == ValidationErrorKind.REQUIRED
