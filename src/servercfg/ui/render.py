"""Presentation helpers for servercfg CLI output."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel

from servercfg.kernel.types import Category, HistoryEntry, Progress, StateRecord, Task

STATUS_DONE = "done"
STATUS_RUNNING = "running"
STATUS_LOCKED = "locked"
STATUS_PENDING = "pending"

_STATUS_MARKERS = {
    STATUS_DONE: "[x]",
    STATUS_RUNNING: "[~]",
    STATUS_LOCKED: "[!]",
    STATUS_PENDING: "[ ]",
}


def bilingual_text(zh: str, en: Optional[str] = None) -> str:
    if not en:
        return zh
    return "{0} ({1})".format(zh, en)


def render_notice(level: str, zh: str, en: Optional[str] = None) -> str:
    prefix_map = {
        "info": bilingual_text("提示", "Info"),
        "warn": bilingual_text("警告", "Warning"),
        "error": bilingual_text("错误", "Error"),
        "success": bilingual_text("成功", "Success"),
    }
    prefix = prefix_map.get(level, bilingual_text("提示", "Info"))
    return "{0}: {1}".format(prefix, bilingual_text(zh, en))


def _is_tty(stream: TextIO, forced: Optional[bool]) -> bool:
    if forced is not None:
        return forced
    isatty = getattr(stream, "isatty", None)
    if callable(isatty):
        try:
            return bool(isatty())
        except (OSError, ValueError):
            return False
    return False


def render_progress_bar(percentage: int, width: int = 50) -> str:
    clamped = max(0, min(100, int(percentage)))
    width = max(1, int(width))
    filled = (clamped * width) // 100
    return "[{0}{1}] {2}%".format("#" * filled, "-" * (width - filled), clamped)


def task_status(task: Task, record: StateRecord) -> str:
    if task.task_id in record.completed:
        return STATUS_DONE
    if record.in_progress == task.task_id:
        return STATUS_RUNNING
    if task.prerequisite_id and task.prerequisite_id not in record.completed:
        return STATUS_LOCKED
    return STATUS_PENDING


def task_list_lines(
    sections: Sequence[Tuple[Category, Sequence[Task]]],
    record: StateRecord,
) -> List[str]:
    lines: List[str] = []
    for category, tasks in sections:
        lines.append(category.display_name)
        for task in tasks:
            status = task_status(task, record)
            line = "  {0} {1:<5} {2}".format(_STATUS_MARKERS[status], task.task_id, task.display_name)
            if status == STATUS_LOCKED:
                line += "  ({0})".format(bilingual_text("需要 " + str(task.prerequisite_id), "requires " + str(task.prerequisite_id)))
            lines.append(line)
        lines.append("")
    return lines


def progress_lines(
    overall: Progress,
    breakdown: Iterable[Tuple[Category, Progress]],
    record: StateRecord,
    width: int = 50,
) -> List[str]:
    lines = [
        bilingual_text("总体进度", "Overall Progress"),
        "{0} {1}/{2}".format(
            render_progress_bar(overall.percentage, width),
            overall.completed_count,
            overall.total_count,
        ),
        "",
        bilingual_text("分类进度", "By Category"),
    ]
    for category, progress in breakdown:
        lines.append(
            "{0:<28} {1}/{2} ({3}%)".format(
                category.display_name,
                progress.completed_count,
                progress.total_count,
                progress.percentage,
            )
        )
    lines.append("")
    lines.append("{0}: {1}".format(bilingual_text("进行中", "In Progress"), record.in_progress or "-"))
    lines.append(
        "{0}: {1}".format(
            bilingual_text("已完成", "Completed"),
            ", ".join(record.completed) if record.completed else "-",
        )
    )
    return lines


def history_lines(entries: Iterable[HistoryEntry]) -> List[str]:
    lines: List[str] = []
    for entry in entries:
        line = "{0} {1:<10} {2}".format(entry.timestamp, entry.event.value, entry.subject_id)
        if entry.note:
            line += "  {0}".format(entry.note)
        lines.append(line)
    return lines


def render_review_panel(
    title: str,
    fields: Dict[str, str],
    stream: TextIO,
    is_tty: Optional[bool] = None,
    secret_fields: Iterable[str] = (),
) -> None:
    hidden = set(secret_fields)
    rows = []
    for key, value in fields.items():
        label = key.replace("_", " ").title()
        shown = "********" if key in hidden and value else (value or "-")
        rows.append("{0}: {1}".format(label, shown))
    heading = bilingual_text("确认配置", "Review") + " - " + title

    if _is_tty(stream, is_tty):
        console = Console(file=stream, highlight=False, soft_wrap=True)
        console.print(Panel("\n".join(rows) or "-", title=heading, border_style="cyan", box=box.ROUNDED))
        return

    lines = rows or ["-"]
    width = max([len(heading)] + [len(line) for line in lines])
    stream.write("+-{0}-+\n".format(heading.ljust(width, "-")))
    for line in lines:
        stream.write("| {0} |\n".format(line.ljust(width)))
    stream.write("+-{0}-+\n".format("-" * width))
    stream.flush()


def render_status_text(report: Dict[str, Any]) -> str:
    lines = [
        bilingual_text("运行状态", "Runtime Status"),
        "state_file={0}".format(report.get("state_file", "")),
        "history_db={0}".format(report.get("history_db", "")),
        "scripts_root={0} dry_run={1}".format(report.get("scripts_root", ""), bool(report.get("dry_run"))),
        "progress={0}/{1} ({2}%)".format(
            int(report.get("completed") or 0),
            int(report.get("total") or 0),
            int(report.get("percentage") or 0),
        ),
        "in_progress={0}".format(report.get("in_progress") or "-"),
        "",
        bilingual_text("调试日志", "Debug Logs"),
        "logs_enabled={0} logs_format={1}".format(
            bool(report.get("logs_enabled")),
            report.get("logs_format") or "-",
        ),
        "logs_active_size_bytes={0} logs_total_size_bytes={1}".format(
            int(report.get("logs_active_size_bytes") or 0),
            int(report.get("logs_total_size_bytes") or 0),
        ),
        "logs_write_errors={0}".format(int(report.get("logs_write_errors") or 0)),
    ]
    return "\n".join(lines)
