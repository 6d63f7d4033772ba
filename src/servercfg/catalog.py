"""Default task catalog: categories, tasks, executor bindings and presets."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from servercfg.config import DEFAULT_SCRIPTS_ROOT as _DEFAULT_SCRIPTS_ROOT
from servercfg.kernel.executors import ExecutorTable, ScriptExecutor
from servercfg.kernel.registry import TaskRegistry
from servercfg.kernel.types import Category, CategoryId, Task, TaskId

DEFAULT_SCRIPTS_ROOT = Path(_DEFAULT_SCRIPTS_ROOT)


@dataclass(frozen=True)
class TaskSpec:
    task_id: str
    display_name: str
    description: str
    script: str
    args: Tuple[str, ...] = ()
    prerequisite_id: Optional[str] = None


CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("base", "Base Configuration"),
    ("security", "Security Configuration"),
    ("network", "Network Services"),
    ("containers", "Container Platforms"),
    ("monitoring", "Monitoring & Compliance"),
    ("utilities", "Utilities"),
)

TASKS: Dict[str, Tuple[TaskSpec, ...]] = {
    "base": (
        TaskSpec("1.1", "System Updates", "Update system packages and configure automatic updates",
                 "base/system-update.sh", ("--complete",)),
        TaskSpec("1.2", "Shell Setup (Zsh + Oh-My-Zsh)",
                 "Install and configure Zsh with Oh-My-Zsh and Powerlevel10k",
                 "base/shell-setup.sh", ("--complete",), prerequisite_id="1.1"),
        TaskSpec("1.3", "Development Tools", "Install NVM, Node.js, and development utilities",
                 "base/dev-tools.sh", ("--complete",), prerequisite_id="1.1"),
        TaskSpec("1.4", "User Management", "Configure users, groups, and sudo access",
                 "base/user-setup.sh", ("--auto",)),
        TaskSpec("1.5", "Timezone & Locale", "Configure system timezone, locale, and NTP",
                 "base/timezone-locale.sh", ("--auto",)),
    ),
    "security": (
        TaskSpec("2.1", "SSH Hardening", "Harden SSH configuration and manage keys",
                 "security/ssh-security.sh", ("--complete",)),
        TaskSpec("2.2", "Firewall (UFW)", "Configure UFW firewall with Docker support",
                 "security/firewall.sh", ("--complete",)),
        TaskSpec("2.3", "Fail2ban", "Install and configure Fail2ban intrusion prevention",
                 "security/fail2ban.sh", ("--complete",), prerequisite_id="2.2"),
        TaskSpec("2.4", "CrowdSec", "Install CrowdSec collaborative IPS",
                 "security/crowdsec.sh", ("--complete",), prerequisite_id="2.2"),
        TaskSpec("2.5", "System Hardening", "Apply CIS benchmark hardening",
                 "security/system-hardening.sh", ("--complete",)),
        TaskSpec("2.6", "AIDE File Integrity", "Setup AIDE file integrity monitoring",
                 "security/aide.sh", ("--complete",)),
        TaskSpec("2.7", "ClamAV Antivirus", "Install and configure ClamAV",
                 "security/clamav.sh", ("--complete",)),
        TaskSpec("2.8", "Zero Trust Security", "Deploy complete Zero Trust architecture",
                 "scripts/zero-trust.sh", ("--auto",)),
    ),
    "network": (
        TaskSpec("3.1", "Tailscale VPN", "Install and configure Tailscale mesh VPN",
                 "security/tailscale.sh", ("--install",), prerequisite_id="2.2"),
        TaskSpec("3.2", "Cloudflare Tunnel", "Setup Cloudflare Tunnel for secure access",
                 "security/cloudflare.sh", ("--install",), prerequisite_id="2.2"),
        TaskSpec("3.3", "Traefik Proxy", "Install Traefik reverse proxy with SSL",
                 "security/traefik.sh", ("--complete",), prerequisite_id="4.1"),
    ),
    "containers": (
        TaskSpec("4.1", "Docker", "Install Docker and Docker Compose",
                 "containers/docker.sh", ("--complete",)),
        TaskSpec("4.2", "Podman", "Install Podman (rootless containers)",
                 "containers/podman.sh", ("--complete",)),
        TaskSpec("4.3", "Coolify", "Install Coolify PaaS platform",
                 "containers/coolify.sh", ("--install",), prerequisite_id="4.1"),
    ),
    "monitoring": (
        TaskSpec("5.1", "Monitoring Tools", "Install system monitoring tools",
                 "monitoring/tools.sh", ("--complete",)),
        TaskSpec("5.2", "Lynis Auditing", "Setup Lynis security auditing",
                 "monitoring/lynis.sh", ("--complete",)),
        TaskSpec("5.3", "Logwatch", "Configure Logwatch log analysis",
                 "monitoring/logwatch.sh", ("--complete",)),
        TaskSpec("5.4", "Compliance Reporting", "Setup compliance checking (CIS, PCI-DSS, etc.)",
                 "monitoring/compliance.sh", ("--complete",), prerequisite_id="5.2"),
    ),
    "utilities": (
        TaskSpec("7.1", "Generate Documentation", "Generate system documentation",
                 "scripts/documentation.sh", ("--complete",)),
        TaskSpec("7.2", "Emergency Recovery", "Access emergency recovery tools",
                 "scripts/emergency.sh", ("--menu",)),
        TaskSpec("7.3", "System Backup", "Backup system configuration",
                 "lib/backup.sh", ("--system",)),
    ),
}


@dataclass(frozen=True)
class Preset:
    name: str
    display_name: str
    description: str
    task_ids: Tuple[str, ...]


PRESETS: Tuple[Preset, ...] = (
    Preset("basic", "Basic Server Setup", "Complete basic server configuration",
           ("1.1", "1.4", "1.5", "2.1", "2.2")),
    Preset("development", "Development Environment", "Setup complete development environment",
           ("1.1", "1.2", "1.3", "4.1")),
    Preset("containers", "Container Platform", "Setup Docker and Podman",
           ("4.1", "4.2")),
)


@dataclass
class Catalog:
    registry: TaskRegistry
    executors: ExecutorTable
    presets: Dict[str, Preset] = field(default_factory=dict)

    def preset(self, name: str) -> Optional[Preset]:
        return self.presets.get(name)


def script_ref(script: str) -> str:
    return "script:{0}".format(script)


def build_default_catalog(
    *,
    scripts_root: Path = DEFAULT_SCRIPTS_ROOT,
    dry_run: bool = False,
    presets: Sequence[Preset] = PRESETS,
) -> Catalog:
    """Register every category and task, bind executors, then validate.

    Registry errors and unbound executor refs surface here, before any task
    can run.
    """

    registry = TaskRegistry()
    executors = ExecutorTable()

    for order, (category_id, display_name) in enumerate(CATEGORIES, start=1):
        registry.register_category(Category(CategoryId(category_id), display_name, order=order))
        for task_order, spec in enumerate(TASKS.get(category_id, ()), start=1):
            ref = script_ref(spec.script)
            if ref not in executors:
                executors.bind(
                    ScriptExecutor(
                        ref,
                        spec.script,
                        spec.args,
                        scripts_root=scripts_root,
                        dry_run=dry_run,
                    )
                )
            registry.register(
                Task(
                    task_id=TaskId(spec.task_id),
                    category_id=CategoryId(category_id),
                    display_name=spec.display_name,
                    description=spec.description,
                    prerequisite_id=TaskId(spec.prerequisite_id) if spec.prerequisite_id else None,
                    executor_ref=ref,
                    order=task_order,
                )
            )

    registry.validate()
    check_bindings(registry, executors)

    for preset in presets:
        for task_id in preset.task_ids:
            registry.lookup(task_id)

    return Catalog(
        registry=registry,
        executors=executors,
        presets={preset.name: preset for preset in presets},
    )


def check_bindings(registry: TaskRegistry, executors: ExecutorTable) -> List[str]:
    bound = executors.bind_tasks(registry.tasks())
    return [registry.lookup(task_id).executor_ref for task_id in bound]
