from __future__ import annotations

import json
from pathlib import Path

from servercfg.wizard import Step, WizardDefinition
from servercfg.wizard.store import MASK, WizardConfigStore


def _definition(name: str = "network_config") -> WizardDefinition:
    return WizardDefinition(
        name=name,
        title="Network",
        steps=(
            Step("hostname", "Hostname"),
            Step("tailscale_auth_key", "Auth key", required=False, sensitive=True),
            Step("admin_password", "Password", kind="password"),
        ),
    )


def test_save_masks_secret_fields(tmp_path: Path):
    store = WizardConfigStore(tmp_path / "wizards")
    saved = store.save(
        _definition(),
        {"hostname": "web01", "tailscale_auth_key": "tskey-abc", "admin_password": "hunter22!"},
    )

    payload = json.loads(saved.path.read_text(encoding="utf-8"))
    assert payload["wizard"] == "network_config"
    assert payload["fields"] == {
        "hostname": "web01",
        "tailscale_auth_key": MASK,
        "admin_password": MASK,
    }
    assert "tskey-abc" not in saved.path.read_text(encoding="utf-8")


def test_empty_secret_is_not_masked(tmp_path: Path):
    store = WizardConfigStore(tmp_path)
    saved = store.save(_definition(), {"hostname": "web01", "tailscale_auth_key": ""})
    assert saved.fields["tailscale_auth_key"] == ""


def test_load_and_list_saved(tmp_path: Path):
    store = WizardConfigStore(tmp_path / "wizards")
    assert store.list_saved() == []
    assert store.load("network_config") is None

    store.save(_definition("network_config"), {"hostname": "a"})
    store.save(_definition("quick_setup"), {"hostname": "b"})
    (tmp_path / "wizards" / "broken.json").write_text("{", encoding="utf-8")

    loaded = store.load("network_config")
    assert loaded is not None
    assert loaded.fields == {"hostname": "a"}
    assert sorted(item.wizard for item in store.list_saved()) == ["network_config", "quick_setup"]
