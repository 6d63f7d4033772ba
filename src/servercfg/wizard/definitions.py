"""Built-in wizards and the plans that turn their answers into task runs."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from servercfg.wizard.types import CHOICE_KIND, Step, WizardDefinition

Fields = Dict[str, str]
PlanFn = Callable[[Fields], List[str]]

YES_NO = ("Yes", "No")
NO_YES = ("No", "Yes")


@dataclass(frozen=True)
class BuiltinWizard:
    definition: WizardDefinition
    plan: PlanFn

    @property
    def name(self) -> str:
        return self.definition.name


def _choice(
    field_name: str,
    prompt: str,
    options: Iterable[str],
    *,
    title: str = "",
    default: Optional[str] = "1",
    when=None,
) -> Step:
    return Step(
        field_name=field_name,
        prompt=prompt,
        kind=CHOICE_KIND,
        default_value=default,
        options=tuple(options),
        title=title,
        when=when,
    )


def _yes(fields: Fields, field_name: str) -> bool:
    return fields.get(field_name, "") == "Yes"


def _starts(fields: Fields, field_name: str, prefix: str) -> bool:
    return fields.get(field_name, "").startswith(prefix)


def ordered_unique(task_ids: Iterable[str]) -> List[str]:
    out: List[str] = []
    for task_id in task_ids:
        if task_id not in out:
            out.append(task_id)
    return out


def _platform_tasks(platform: str) -> List[str]:
    if platform.startswith("Both"):
        return ["4.1", "4.2"]
    if platform.startswith("Docker"):
        return ["4.1"]
    if platform.startswith("Podman"):
        return ["4.2"]
    return []


# quick_setup

def _quick_setup() -> WizardDefinition:
    return WizardDefinition(
        name="quick_setup",
        title="Quick Server Setup",
        description="Basic server configuration",
        steps=(
            _choice(
                "server_purpose",
                "What is the primary purpose of this server?",
                ("Web Server", "Database Server", "Application Server", "Development Server", "General Purpose"),
                title="Server Purpose",
            ),
            _choice(
                "security_level",
                "Select security level:",
                (
                    "Basic (Firewall + SSH hardening)",
                    "Standard (Basic + Fail2ban)",
                    "Enhanced (Standard + CrowdSec + ClamAV)",
                    "Maximum (Zero Trust Architecture)",
                ),
                title="Security Level",
            ),
            _choice(
                "container_platform",
                "Select container platform:",
                ("Docker", "Podman", "Both Docker and Podman", "None"),
                title="Container Platform",
            ),
            _choice(
                "monitoring",
                "Configure monitoring?",
                ("Yes - Full monitoring suite", "Yes - Basic monitoring only", "No - Skip monitoring"),
                title="Monitoring Setup",
            ),
        ),
    )


def _quick_setup_plan(fields: Fields) -> List[str]:
    tasks = ["1.1"]
    level = fields.get("security_level", "")
    if level.startswith("Maximum"):
        tasks += ["2.8"]
    else:
        tasks += ["2.1", "2.2"]
        if level.startswith("Standard") or level.startswith("Enhanced"):
            tasks += ["2.3"]
        if level.startswith("Enhanced"):
            tasks += ["2.4", "2.7"]
    tasks += _platform_tasks(fields.get("container_platform", ""))
    if _starts(fields, "monitoring", "Yes - Full"):
        tasks += ["5.1", "5.2", "5.3"]
    elif _starts(fields, "monitoring", "Yes - Basic"):
        tasks += ["5.1"]
    return ordered_unique(tasks)


# security_hardening

def _security_hardening() -> WizardDefinition:
    return WizardDefinition(
        name="security_hardening",
        title="Security Hardening Wizard",
        description="Comprehensive security setup",
        steps=(
            Step("ssh_port", "SSH Port", kind="port", default_value="22", title="SSH Configuration"),
            _choice("ssh_root_login", "Allow root login?", ("No (Recommended)", "Yes"), title="SSH Configuration"),
            _choice("ssh_password_auth", "Password authentication?", ("No (Key only)", "Yes"), title="SSH Configuration"),
            Step(
                "firewall_ports",
                "Additional ports to open (comma-separated)",
                required=False,
                title="Firewall Configuration",
            ),
            _choice(
                "firewall_default",
                "Default policy:",
                ("Deny all (Recommended)", "Allow all"),
                title="Firewall Configuration",
            ),
            _choice("install_fail2ban", "Install Fail2ban?", YES_NO, title="Intrusion Prevention"),
            _choice("install_crowdsec", "Install CrowdSec?", YES_NO, title="Intrusion Prevention"),
            _choice("kernel_hardening", "Apply kernel hardening?", YES_NO, title="System Hardening"),
            _choice("apparmor", "Configure AppArmor?", YES_NO, title="System Hardening"),
            _choice("audit_system", "Enable audit system?", YES_NO, title="System Hardening"),
            _choice("install_aide", "Install AIDE?", YES_NO, title="File Integrity Monitoring"),
            _choice(
                "aide_daily",
                "Schedule daily checks?",
                YES_NO,
                title="File Integrity Monitoring",
                when=lambda fields: _yes(fields, "install_aide"),
            ),
            _choice("install_clamav", "Install ClamAV?", YES_NO, title="Malware Protection"),
            _choice(
                "clamav_realtime",
                "Enable real-time scanning?",
                YES_NO,
                title="Malware Protection",
                when=lambda fields: _yes(fields, "install_clamav"),
            ),
            _choice("setup_vpn", "Setup VPN (Tailscale)?", YES_NO, title="Network Security"),
        ),
    )


def _security_hardening_plan(fields: Fields) -> List[str]:
    tasks = ["2.1", "2.2"]
    if _yes(fields, "install_fail2ban"):
        tasks.append("2.3")
    if _yes(fields, "install_crowdsec"):
        tasks.append("2.4")
    if _yes(fields, "kernel_hardening"):
        tasks.append("2.5")
    if _yes(fields, "install_aide"):
        tasks.append("2.6")
    if _yes(fields, "install_clamav"):
        tasks.append("2.7")
    if _yes(fields, "setup_vpn"):
        tasks.append("3.1")
    return ordered_unique(tasks)


# development_env

def _development_env() -> WizardDefinition:
    return WizardDefinition(
        name="development_env",
        title="Development Environment Setup",
        description="Development environment",
        steps=(
            _choice("install_zsh", "Install Zsh + Oh-My-Zsh?", YES_NO, title="Shell Configuration"),
            _choice(
                "zsh_theme",
                "Theme preference:",
                ("Powerlevel10k", "Agnoster", "Robbyrussell", "Default"),
                title="Shell Configuration",
                when=lambda fields: _yes(fields, "install_zsh"),
            ),
            _choice("install_nodejs", "Install Node.js (via NVM)?", YES_NO, title="Development Tools"),
            Step(
                "node_version",
                "Node.js version",
                default_value="lts",
                required=False,
                title="Development Tools",
                when=lambda fields: _yes(fields, "install_nodejs"),
            ),
            _choice("install_python", "Install Python tools?", YES_NO, title="Development Tools"),
            _choice("install_go", "Install Go?", YES_NO, title="Development Tools"),
            _choice("container_platform", "Container platform:", ("Docker", "Podman", "Both", "None"), title="Container Tools"),
            Step("git_name", "Git user name", required=False, title="Version Control"),
            Step("git_email", "Git user email", kind="email", required=False, title="Version Control"),
            _choice("configure_vim", "Configure Vim?", YES_NO, title="IDE and Editors"),
        ),
    )


def _development_env_plan(fields: Fields) -> List[str]:
    tasks: List[str] = []
    if _yes(fields, "install_zsh"):
        tasks += ["1.1", "1.2"]
    if _yes(fields, "install_nodejs"):
        tasks += ["1.1", "1.3"]
    tasks += _platform_tasks(fields.get("container_platform", ""))
    return ordered_unique(tasks)


# network_config

def _static_ip(fields: Fields) -> bool:
    return _yes(fields, "static_ip")


def _network_config() -> WizardDefinition:
    return WizardDefinition(
        name="network_config",
        title="Network Configuration Wizard",
        description="Network and connectivity",
        steps=(
            Step("hostname", "Hostname", default_value=socket.gethostname() or None, title="System Identity"),
            Step("domain", "Domain name", kind="domain", required=False, title="System Identity"),
            _choice("static_ip", "Configure static IP?", NO_YES, title="Network Interfaces"),
            Step("ip_address", "IP Address", kind="ipv4", title="Network Interfaces", when=_static_ip),
            Step(
                "netmask",
                "Netmask",
                kind="ipv4",
                default_value="255.255.255.0",
                title="Network Interfaces",
                when=_static_ip,
            ),
            Step("gateway", "Gateway", kind="ipv4", title="Network Interfaces", when=_static_ip),
            Step("dns_servers", "DNS Servers (comma-separated)", title="Network Interfaces", when=_static_ip),
            Step("ssh_port", "SSH Port", kind="port", default_value="22", title="Firewall Configuration"),
            Step("http_port", "HTTP Port (0 to skip)", kind="integer", default_value="80", title="Firewall Configuration"),
            Step("https_port", "HTTPS Port (0 to skip)", kind="integer", default_value="443", title="Firewall Configuration"),
            Step("custom_ports", "Custom ports (comma-separated)", required=False, title="Firewall Configuration"),
            _choice("setup_tailscale", "Setup Tailscale VPN?", YES_NO, title="VPN Configuration"),
            Step(
                "tailscale_auth_key",
                "Tailscale auth key",
                required=False,
                sensitive=True,
                title="VPN Configuration",
                when=lambda fields: _yes(fields, "setup_tailscale"),
            ),
            _choice("setup_proxy", "Setup reverse proxy?", ("No", "Traefik", "Nginx", "Caddy"), title="Reverse Proxy"),
        ),
    )


def _network_config_plan(fields: Fields) -> List[str]:
    tasks = ["2.2"]
    if _yes(fields, "setup_tailscale"):
        tasks.append("3.1")
    if fields.get("setup_proxy") == "Traefik":
        tasks += ["4.1", "3.3"]
    return ordered_unique(tasks)


# container_platform

def _container_platform() -> WizardDefinition:
    def uses(name: str) -> Callable[[Fields], bool]:
        def predicate(fields: Fields) -> bool:
            platform = fields.get("primary_platform", "")
            return platform.startswith(name) or platform.startswith("Both")

        return predicate

    docker = uses("Docker")
    podman = uses("Podman")
    return WizardDefinition(
        name="container_platform",
        title="Container Platform Setup",
        description="Docker/Podman setup",
        steps=(
            _choice(
                "primary_platform",
                "Primary container platform:",
                ("Docker (Most compatible)", "Podman (Rootless, more secure)", "Both (Maximum flexibility)"),
                title="Platform Selection",
            ),
            _choice(
                "docker_storage",
                "Docker storage driver:",
                ("overlay2", "devicemapper", "btrfs"),
                title="Docker Configuration",
                when=docker,
            ),
            _choice("docker_swarm", "Enable Docker Swarm?", NO_YES, title="Docker Configuration", when=docker),
            _choice("docker_compose", "Install Docker Compose?", YES_NO, title="Docker Configuration", when=docker),
            _choice(
                "podman_rootless",
                "Enable rootless mode?",
                ("Yes (Recommended)", "No"),
                title="Podman Configuration",
                when=podman,
            ),
            _choice("podman_docker_compat", "Docker compatibility mode?", YES_NO, title="Podman Configuration", when=podman),
            _choice("podman_compose", "Install Podman Compose?", YES_NO, title="Podman Configuration", when=podman),
            _choice(
                "orchestration",
                "Install orchestration platform?",
                ("None", "Coolify (Simple PaaS)", "Portainer (Web UI)", "K3s (Lightweight Kubernetes)"),
                title="Container Orchestration",
            ),
        ),
    )


def _container_platform_plan(fields: Fields) -> List[str]:
    tasks = _platform_tasks(fields.get("primary_platform", ""))
    if _starts(fields, "orchestration", "Coolify"):
        tasks += ["4.1", "4.3"]
    return ordered_unique(tasks)


# production_server

def _production_server() -> WizardDefinition:
    return WizardDefinition(
        name="production_server",
        title="Production Server Setup",
        description="Production-ready configuration",
        steps=(
            _choice(
                "server_role",
                "Primary server role:",
                ("Web Server", "API Server", "Database Server", "Load Balancer", "Application Server"),
                title="Server Role",
            ),
            _choice("high_availability", "Configure for high availability?", YES_NO, title="High Availability"),
            _choice("backup_strategy", "Setup backup strategy?", YES_NO, title="High Availability"),
            _choice("kernel_optimize", "Optimize kernel parameters?", YES_NO, title="Performance Optimization"),
            _choice(
                "security_level",
                "Security level:",
                ("Standard", "Enhanced", "Maximum (Zero Trust)"),
                title="Security Configuration",
            ),
            _choice(
                "monitoring_level",
                "Monitoring level:",
                ("Basic (System metrics)", "Standard (+ Application metrics)", "Comprehensive (+ APM)"),
                title="Monitoring and Alerting",
            ),
            Step("alert_email", "Alert email", kind="email", required=False, title="Monitoring and Alerting"),
            _choice(
                "compliance",
                "Compliance framework:",
                ("None", "PCI-DSS", "HIPAA", "SOC 2", "GDPR"),
                title="Compliance Requirements",
            ),
        ),
    )


def _production_server_plan(fields: Fields) -> List[str]:
    level = fields.get("security_level", "")
    if level.startswith("Maximum"):
        tasks = ["2.8"]
    elif level.startswith("Enhanced"):
        tasks = ["2.5", "2.2", "2.3", "2.4"]
    else:
        tasks = ["2.2", "2.1"]
    if _starts(fields, "monitoring_level", "Comprehensive"):
        tasks += ["5.1", "5.2", "5.4"]
    else:
        tasks += ["5.1"]
    if fields.get("compliance", "None") != "None":
        tasks += ["5.2", "5.4"]
    if _yes(fields, "backup_strategy"):
        tasks.append("7.3")
    return ordered_unique(tasks)


def builtin_wizards() -> List[BuiltinWizard]:
    return [
        BuiltinWizard(_quick_setup(), _quick_setup_plan),
        BuiltinWizard(_security_hardening(), _security_hardening_plan),
        BuiltinWizard(_development_env(), _development_env_plan),
        BuiltinWizard(_network_config(), _network_config_plan),
        BuiltinWizard(_container_platform(), _container_platform_plan),
        BuiltinWizard(_production_server(), _production_server_plan),
    ]


def find_wizard(name: str) -> Optional[BuiltinWizard]:
    for wizard in builtin_wizards():
        if wizard.name == name:
            return wizard
    return None


def wizard_names() -> Tuple[str, ...]:
    return tuple(wizard.name for wizard in builtin_wizards())
