"""Typer CLI entrypoints for servercfg."""

from __future__ import annotations

import json
import sys
from typing import List

import click
import typer
from typer.core import TyperGroup

from servercfg.config import (
    initialize_project_config,
    load_settings,
    project_config_exists,
    resolve_project_config_root,
)
from servercfg.kernel.errors import (
    ProjectConfigError,
    PrerequisiteUnmet,
    ServerConfigError,
    TaskNotFound,
    error_summary,
)
from servercfg.kernel.runtime import Runtime
from servercfg.kernel.types import ExecutionResult, ExecutionStatus
from servercfg.ui.render import (
    bilingual_text,
    history_lines,
    progress_lines,
    render_notice,
    render_progress_bar,
    render_review_panel,
    render_status_text,
    task_list_lines,
)
from servercfg.wizard.definitions import BuiltinWizard, builtin_wizards, find_wizard
from servercfg.wizard.engine import WizardEngine
from servercfg.wizard.types import Step, WizardState

BACK_TOKEN = ":back"
CANCEL_TOKEN = ":cancel"
EXIT_USAGE = 2


class ServerCfgGroup(TyperGroup):
    """Treat an unknown first positional token as a task id for `run`."""

    def resolve_command(self, ctx: click.Context, args: List[str]):
        if args and not args[0].startswith("-"):
            known = set(self.list_commands(ctx))
            if args[0] not in known:
                run_command = self.get_command(ctx, "run")
                if run_command is not None:
                    return "run", run_command, args
        return super().resolve_command(ctx, args)


app = typer.Typer(
    no_args_is_help=True,
    help="服务器配置任务编排 (Server configuration task orchestration)",
)
app.info.cls = ServerCfgGroup
wizard_app = typer.Typer(help="交互式配置向导 (Interactive setup wizards)")
app.add_typer(wizard_app, name="wizard")


def _missing_config_message() -> str:
    return render_notice(
        "error",
        "当前目录缺少项目配置目录：{0}，请先执行 `servercfg init`。".format(
            resolve_project_config_root()
        ),
        "Missing project config directory. Run `servercfg init` first.",
    )


def _require_project_config() -> None:
    if project_config_exists():
        return
    typer.echo(_missing_config_message(), err=True)
    raise typer.Exit(code=EXIT_USAGE)


def _open_runtime(dry_run: bool = False) -> Runtime:
    _require_project_config()
    try:
        settings = load_settings(dry_run=dry_run)
        return Runtime(settings)
    except ServerConfigError as exc:
        typer.echo(render_notice("error", error_summary(exc)), err=True)
        raise typer.Exit(code=EXIT_USAGE)


def _exit_code_for(results: List[ExecutionResult]) -> int:
    for result in results:
        if result.status == ExecutionStatus.BLOCKED:
            return EXIT_USAGE
        if result.status == ExecutionStatus.FAILURE:
            return result.code if 0 < result.code < 256 else 1
    return 0


def _echo_result(runtime: Runtime, result: ExecutionResult) -> None:
    task = runtime.registry.get(result.task_id)
    name = task.display_name if task is not None else result.task_id
    if result.status == ExecutionStatus.SUCCESS:
        typer.echo(
            render_notice(
                "success",
                "{0} {1} 已完成".format(result.task_id, name),
                "{0} {1} completed".format(result.task_id, name),
            )
        )
    elif result.status == ExecutionStatus.BLOCKED:
        typer.echo(
            render_notice(
                "warn",
                "{0} 需要先完成 {1}".format(result.task_id, result.note),
                "{0} requires {1} to be completed first".format(result.task_id, result.note),
            ),
            err=True,
        )
    else:
        detail = result.note or "code={0}".format(result.code)
        typer.echo(
            render_notice(
                "error",
                "{0} {1} 失败：{2}".format(result.task_id, name, detail),
                "{0} {1} failed: {2}".format(result.task_id, name, detail),
            ),
            err=True,
        )


def _run_sequence(runtime: Runtime, task_ids: List[str]) -> int:
    try:
        results = runtime.engine.execute_many(task_ids)
    except ServerConfigError as exc:
        typer.echo(render_notice("error", error_summary(exc)), err=True)
        return EXIT_USAGE
    for result in results:
        _echo_result(runtime, result)
    return _exit_code_for(results)


@app.command("init")
def init_cmd(
    force: bool = typer.Option(
        False,
        "--force",
        help="重建 .servercfg_config（会先删除已有目录） (Recreate config directory)",
    ),
) -> None:
    try:
        config_root = initialize_project_config(force=force)
    except ProjectConfigError as exc:
        typer.echo(render_notice("error", str(exc)), err=True)
        raise typer.Exit(code=EXIT_USAGE)

    typer.echo(
        render_notice(
            "success",
            "项目配置初始化完成：{0}".format(config_root),
            "Initialized project config at: {0}".format(config_root),
        )
    )


@app.command("list")
def list_cmd() -> None:
    """列出任务及状态 (List tasks with their status)."""
    runtime = _open_runtime()
    try:
        registry = runtime.registry
        sections = [
            (category, registry.tasks_in_category(category.category_id))
            for category in registry.categories()
        ]
        for line in task_list_lines(sections, runtime.state_store.snapshot()):
            typer.echo(line)
        if runtime.catalog.presets:
            typer.echo(bilingual_text("预设", "Presets"))
            for preset in runtime.catalog.presets.values():
                typer.echo("  {0:<12} {1} [{2}]".format(preset.name, preset.display_name, " ".join(preset.task_ids)))
    finally:
        runtime.close()


@app.command("run")
def run_cmd(
    task_id: str = typer.Argument(..., help="任务 ID，例如 1.1 (Task id, e.g. 1.1)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="不执行脚本，只记录状态 (Skip scripts)"),
) -> None:
    """执行单个任务 (Run one task)."""
    runtime = _open_runtime(dry_run=dry_run)
    try:
        try:
            result = runtime.engine.execute(task_id)
        except (TaskNotFound, PrerequisiteUnmet) as exc:
            typer.echo(render_notice("error", error_summary(exc)), err=True)
            raise typer.Exit(code=EXIT_USAGE)
        except ServerConfigError as exc:
            typer.echo(render_notice("error", error_summary(exc)), err=True)
            raise typer.Exit(code=1)
        _echo_result(runtime, result)
        exit_code = _exit_code_for([result])
    finally:
        runtime.close()
    raise typer.Exit(code=exit_code)


@app.command("preset")
def preset_cmd(
    name: str = typer.Argument(..., help="预设名称 (Preset name)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="不执行脚本，只记录状态 (Skip scripts)"),
) -> None:
    """按顺序执行一组任务 (Run a complete-setup preset)."""
    runtime = _open_runtime(dry_run=dry_run)
    try:
        preset = runtime.catalog.preset(name)
        if preset is None:
            typer.echo(
                render_notice(
                    "error",
                    "未知预设：{0}，可选值：{1}".format(name, "|".join(runtime.catalog.presets)),
                    "Unknown preset: {0}".format(name),
                ),
                err=True,
            )
            raise typer.Exit(code=EXIT_USAGE)
        typer.echo(render_notice("info", "执行预设 {0}".format(preset.display_name), "Running preset {0}".format(preset.name)))
        exit_code = _run_sequence(runtime, list(preset.task_ids))
    finally:
        runtime.close()
    raise typer.Exit(code=exit_code)


@app.command("progress")
def progress_cmd() -> None:
    """显示完成进度 (Show completion progress)."""
    runtime = _open_runtime()
    try:
        lines = progress_lines(
            runtime.progress.overall_progress(),
            runtime.progress.category_breakdown(),
            runtime.state_store.snapshot(),
        )
        for line in lines:
            typer.echo(line)
    finally:
        runtime.close()


@app.command("history")
def history_cmd(
    limit: int = typer.Option(20, "--limit", min=1, help="显示条数 (Number of entries)"),
) -> None:
    """显示最近的执行记录 (Show recent history entries)."""
    runtime = _open_runtime()
    try:
        entries = runtime.history.tail(limit)
        if not entries:
            typer.echo(render_notice("info", "暂无历史记录。", "No history yet."))
            return
        for line in history_lines(entries):
            typer.echo(line)
    finally:
        runtime.close()


@app.command("reset")
def reset_cmd(
    yes: bool = typer.Option(False, "--yes", help="跳过确认 (Skip confirmation)"),
) -> None:
    """清空完成状态 (Clear all completion state)."""
    runtime = _open_runtime()
    try:
        if not yes and not typer.confirm(bilingual_text("确认清空所有进度？", "Reset all progress?"), default=False):
            typer.echo(render_notice("info", "已取消。", "Cancelled."))
            return
        runtime.engine.reset()
        typer.echo(render_notice("success", "进度已清空。", "Progress has been reset."))
    finally:
        runtime.close()


@app.command("status")
def status_cmd(
    output_format: str = typer.Option("text", "--format", help="输出格式：json|text (Output format)"),
) -> None:
    normalized_format = output_format.strip().lower()
    if normalized_format not in {"json", "text"}:
        typer.echo(
            render_notice("error", "不支持的格式：{0}".format(output_format), "Unsupported format: {0}".format(output_format)),
            err=True,
        )
        raise typer.Exit(code=EXIT_USAGE)

    runtime = _open_runtime()
    try:
        report = runtime.status()
        if normalized_format == "json":
            typer.echo(json.dumps(report, ensure_ascii=True, indent=2))
            return
        typer.echo(render_status_text(report))
    finally:
        runtime.close()


@wizard_app.command("list")
def wizard_list_cmd() -> None:
    for wizard in builtin_wizards():
        definition = wizard.definition
        typer.echo("{0:<20} {1} - {2}".format(definition.name, definition.title, definition.description))


@wizard_app.command("saved")
def wizard_saved_cmd() -> None:
    runtime = _open_runtime()
    try:
        saved = runtime.wizard_store.list_saved()
        if not saved:
            typer.echo(render_notice("info", "没有已保存的向导配置。", "No saved wizard configurations."))
            return
        for item in saved:
            typer.echo("{0} ({1})".format(item.wizard, item.timestamp))
            for key, value in item.fields.items():
                typer.echo("  {0}={1}".format(key, value))
    finally:
        runtime.close()


def _prompt_step(engine: WizardEngine, step: Step) -> str:
    progress = engine.progress()
    header = "{0}/{1} {2}".format(progress.step_number, progress.total_steps, render_progress_bar(progress.percentage, 20))
    if step.title:
        header = "{0}  {1}".format(header, step.title)
    typer.echo(header)
    if step.is_choice:
        for index, option in enumerate(step.options, start=1):
            typer.echo("  {0}) {1}".format(index, option))
    return typer.prompt(
        step.prompt,
        default=step.default_value if step.default_value is not None else "",
        show_default=step.default_value is not None,
        hide_input=step.is_secret,
    )


def _collect_fields(engine: WizardEngine, wizard: BuiltinWizard) -> bool:
    engine.start(wizard.definition)
    typer.echo(bilingual_text(wizard.definition.title, "{0}, {1} / {2}".format(wizard.name, BACK_TOKEN, CANCEL_TOKEN)))
    while engine.state == WizardState.RUNNING:
        step = engine.current_step()
        if step is None:
            break
        raw = _prompt_step(engine, step)
        token = raw.strip().lower()
        if token == CANCEL_TOKEN:
            engine.cancel()
            return False
        if token == BACK_TOKEN:
            engine.back()
            continue
        result = engine.submit_input(raw)
        if not result.accepted and result.error is not None:
            typer.echo(
                render_notice(
                    "warn",
                    "{0} 无效：{1}".format(result.field_name, result.error.reason),
                    "{0} rejected ({1})".format(result.field_name, result.error.kind.value),
                ),
                err=True,
            )

    secret = [step.field_name for step in wizard.definition.steps if step.is_secret]
    render_review_panel(wizard.definition.title, engine.review(), sys.stdout, secret_fields=secret)
    accepted = typer.confirm(bilingual_text("确认并执行？", "Apply this configuration?"), default=False)
    return engine.confirm(accepted) == WizardState.CONFIRMED


@wizard_app.command("run")
def wizard_run_cmd(
    name: str = typer.Argument(..., help="向导名称 (Wizard name)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="不执行脚本，只记录状态 (Skip scripts)"),
) -> None:
    wizard = find_wizard(name)
    if wizard is None:
        typer.echo(
            render_notice(
                "error",
                "未知向导：{0}".format(name),
                "Unknown wizard: {0}. See `servercfg wizard list`.".format(name),
            ),
            err=True,
        )
        raise typer.Exit(code=EXIT_USAGE)

    runtime = _open_runtime(dry_run=dry_run)
    try:
        engine = runtime.new_wizard_engine()
        if not _collect_fields(engine, wizard):
            typer.echo(render_notice("info", "向导已取消。", "Wizard cancelled."))
            raise typer.Exit(code=1)

        fields = engine.confirmed_fields()
        try:
            results = runtime.run_wizard_plan(wizard, fields)
        except ServerConfigError as exc:
            typer.echo(render_notice("error", error_summary(exc)), err=True)
            raise typer.Exit(code=EXIT_USAGE)
        if not results:
            typer.echo(render_notice("info", "没有需要执行的任务。", "Nothing to run for these answers."))
        for result in results:
            _echo_result(runtime, result)
        exit_code = _exit_code_for(results)
    finally:
        runtime.close()
    raise typer.Exit(code=exit_code)


if __name__ == "__main__":
    app()
