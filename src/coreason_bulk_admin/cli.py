# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Annotated, Callable, List, Optional, Tuple

import typer
from pydantic import ValidationError

from coreason_bulk_admin.actions import (
    AutoReplyAction,
    AutoReplyConfig,
    GpoFilterConfig,
    GpoSecurityFilterAction,
    InstallerConfig,
    LatencyConfig,
    LatencyProbeAction,
    PackageInstallAction,
    PrintQueueClearAction,
    ProfileCleanupAction,
    ProfileCleanupConfig,
    RemoteAction,
    ScheduledTaskAction,
    ScheduledTaskConfig,
    ServiceStartAction,
)
from coreason_bulk_admin.config import Settings, get_settings
from coreason_bulk_admin.confirm import PromptConfirmer
from coreason_bulk_admin.domain.context import ConfirmMode, RunOptions
from coreason_bulk_admin.driver import BulkDriver
from coreason_bulk_admin.events import CompositeEmitter, EventEmitter, LoguruEmitter
from coreason_bulk_admin.exceptions import BatchAbortedError, BulkAdminError
from coreason_bulk_admin.orchestrator import BatchRunner
from coreason_bulk_admin.reporters import LoguruReportSink, MarkdownReportSink, ReportSink
from coreason_bulk_admin.sessions import GraphSessionManager, LocalSessionManager, SessionManager
from coreason_bulk_admin.sources import (
    CsvIdentitySource,
    GraphGroupSource,
    IdentitySource,
    LocalProfileSource,
    StaticIdentitySource,
    TextFileIdentitySource,
)
from coreason_bulk_admin.ui.console import RichConsoleEmitter, RichSummarySink
from coreason_bulk_admin.utils.logger import configure_logging, logger
from coreason_bulk_admin.utils.shell import ShellExecutor

app = typer.Typer(
    name="coreason-bulk-admin",
    help="Coreason Bulk Admin: apply one change to many mailboxes, hosts, services or profiles.",
    add_completion=False,
)

# Target selection
CsvOption = Annotated[Optional[Path], typer.Option("--csv", help="Delimited file holding the targets.")]
ColumnOption = Annotated[str, typer.Option("--column", help="CSV column holding the identity.")]
ListOption = Annotated[Optional[Path], typer.Option("--list", help="Text file with one target per line.")]
TargetOption = Annotated[
    Optional[List[str]], typer.Option("--target", "-t", help="A single target. Repeat for more.")
]

# Run policy
DryRunOption = Annotated[bool, typer.Option("--dry-run", help="Report what would change without changing it.")]
ConfirmOption = Annotated[
    Optional[ConfirmMode], typer.Option("--confirm", help="Confirmation policy (always, never, dry-run).")
]
StopOption = Annotated[bool, typer.Option("--stop-on-error", help="Abort the batch at the first failure.")]
NoIsolateOption = Annotated[bool, typer.Option("--no-isolate", help="Let action errors propagate and abort.")]
FailOption = Annotated[bool, typer.Option("--fail-on-error", help="Exit non-zero if any target failed.")]
ReportOption = Annotated[Optional[Path], typer.Option("--report", help="Write a markdown report to this path.")]
LiveOption = Annotated[bool, typer.Option("--live", help="Show a live progress table.")]


@dataclass
class RunFlags:
    dry_run: bool = False
    confirm: Optional[ConfirmMode] = None
    stop_on_error: bool = False
    no_isolate: bool = False
    fail_on_error: bool = False
    report: Optional[Path] = None
    live: bool = False

    def to_options(self, settings: Settings) -> RunOptions:
        base = settings.run_options()
        confirm = base.confirm
        if self.confirm is not None:
            confirm = self.confirm
        if self.dry_run:
            confirm = ConfirmMode.DRY_RUN
        return RunOptions(
            continue_on_error=base.continue_on_error and not self.stop_on_error,
            confirm=confirm,
            isolate_exceptions=base.isolate_exceptions and not self.no_isolate,
            fail_on_any_error=base.fail_on_any_error or self.fail_on_error,
        )


Wiring = Tuple[RemoteAction, SessionManager, IdentitySource]


def _check_single_source(**sources: object) -> None:
    given = [name for name, value in sources.items() if value]
    if len(given) != 1:
        names = ", ".join(f"--{name}" for name in sources)
        raise typer.BadParameter(f"Specify exactly one target source: {names}")


def _file_or_static_source(
    csv: Optional[Path], column: str, list_file: Optional[Path], targets: Optional[List[str]]
) -> IdentitySource:
    if csv:
        return CsvIdentitySource(csv, column)
    if list_file:
        return TextFileIdentitySource(list_file)
    return StaticIdentitySource(targets or [])


def _report_path(flags: RunFlags, settings: Settings, action_name: str) -> Optional[Path]:
    if flags.report:
        return flags.report
    if settings.report_dir:
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        return Path(settings.report_dir) / f"{action_name}-{stamp}.md"
    return None


def _execute(build: Callable[[Settings], Wiring], flags: RunFlags) -> None:
    """
    Composition root shared by every command. Exits the process with the run status.
    """
    console_emitter: Optional[RichConsoleEmitter] = None
    try:
        settings = get_settings()
        configure_logging(settings.log_level, settings.log_file)
        action, session_manager, source = build(settings)
        options = flags.to_options(settings)

        emitters: List[EventEmitter] = [LoguruEmitter()]
        if flags.live:
            console_emitter = RichConsoleEmitter()
            emitters.append(console_emitter)
            console_emitter.start()

        sinks: List[ReportSink] = [LoguruReportSink(), RichSummarySink()]
        report_path = _report_path(flags, settings, action.name)
        if report_path:
            sinks.append(MarkdownReportSink(report_path))

        confirm = PromptConfirmer() if options.confirm == ConfirmMode.ALWAYS else None
        driver = BulkDriver(event_emitter=CompositeEmitter(emitters), confirm=confirm)
        runner = BatchRunner(session_manager=session_manager, driver=driver, sinks=sinks)

        logger.info(f"Running '{action.name}' (confirm={options.confirm.value})")
        summary = runner.run(source, action, options)

    except BatchAbortedError as e:
        logger.error(f"Batch aborted: {e}")
        sys.exit(1)
    except BulkAdminError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        sys.exit(1)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)
    finally:
        if console_emitter:
            console_emitter.stop()

    if summary.aborted:
        logger.error("Run aborted before all targets were processed.")
        sys.exit(1)
    if options.fail_on_any_error and summary.failed:
        logger.error(f"{summary.failed} target(s) failed.")
        sys.exit(1)
    logger.info("Run completed.")
    sys.exit(0)


@app.command(name="auto-reply")
def auto_reply(
    status: str = typer.Option("alwaysEnabled", "--status", help="disabled, alwaysEnabled or scheduled."),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Internal reply text."),
    message_file: Optional[Path] = typer.Option(None, "--message-file", help="Read the internal reply from a file."),
    external_message: Optional[str] = typer.Option(None, "--external-message", help="External reply text."),
    audience: str = typer.Option("all", "--audience", help="External audience: none, contactsOnly or all."),
    start: Optional[datetime] = typer.Option(None, "--start", help="Scheduled window start."),
    end: Optional[datetime] = typer.Option(None, "--end", help="Scheduled window end."),
    time_zone: str = typer.Option("UTC", "--time-zone", help="Time zone of --start/--end."),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Directory group whose members are targeted."),
    csv: CsvOption = None,
    column: Annotated[str, typer.Option("--column", help="CSV column holding the mailbox UPN.")] = "UserPrincipalName",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Configures mailbox automatic replies (out of office) through Microsoft Graph.
    """
    _check_single_source(group=group, csv=csv, list=list_file, target=target)

    def build(settings: Settings) -> Wiring:
        internal = message_file.read_text(encoding="utf-8") if message_file else (message or "")
        config = AutoReplyConfig(
            status=status,  # type: ignore[arg-type]
            internal_message=internal,
            external_message=external_message,
            external_audience=audience,  # type: ignore[arg-type]
            start=start,
            end=end,
            time_zone=time_zone,
        )
        manager = GraphSessionManager(settings)
        source: IdentitySource
        if group:
            source = GraphGroupSource(manager, group)
        else:
            source = _file_or_static_source(csv, column, list_file, target)
        return AutoReplyAction(manager, config), manager, source

    _execute(build, RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live))


def _package_command(
    mode: str,
    tool: str,
    extra_args: Optional[List[str]],
    log_dir: Optional[str],
    timeout: Optional[float],
    csv: Optional[Path],
    column: str,
    list_file: Optional[Path],
    target: Optional[List[str]],
    flags: RunFlags,
) -> None:
    _check_single_source(csv=csv, list=list_file, target=target)

    def build(settings: Settings) -> Wiring:
        config = InstallerConfig(
            tool=tool,  # type: ignore[arg-type]
            mode=mode,  # type: ignore[arg-type]
            extra_args=extra_args or [],
            log_dir=log_dir,
            timeout=timeout or settings.shell_timeout,
        )
        executable = "msiexec.exe" if config.tool == "msiexec" else "winget"
        action = PackageInstallAction(config, shell=ShellExecutor(timeout=settings.shell_timeout))
        return action, LocalSessionManager([executable]), _file_or_static_source(csv, column, list_file, target)

    _execute(build, flags)


@app.command(name="install")
def install(
    tool: str = typer.Option("winget", "--tool", help="winget or msiexec."),
    arg: Optional[List[str]] = typer.Option(None, "--arg", help="Extra installer argument. Repeat for more."),
    log_dir: Optional[str] = typer.Option(None, "--log-dir", help="msiexec verbose log directory."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-package timeout in seconds."),
    upgrade: bool = typer.Option(False, "--upgrade", help="Upgrade instead of install (winget)."),
    csv: CsvOption = None,
    column: ColumnOption = "Package",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Installs (or upgrades) packages. Exit codes 0, 3010 and 1641 count as success.
    """
    flags = RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live)
    mode = "upgrade" if upgrade else "install"
    _package_command(mode, tool, arg, log_dir, timeout, csv, column, list_file, target, flags)


@app.command(name="uninstall")
def uninstall(
    tool: str = typer.Option("winget", "--tool", help="winget or msiexec."),
    arg: Optional[List[str]] = typer.Option(None, "--arg", help="Extra uninstaller argument. Repeat for more."),
    log_dir: Optional[str] = typer.Option(None, "--log-dir", help="msiexec verbose log directory."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-package timeout in seconds."),
    csv: CsvOption = None,
    column: ColumnOption = "Package",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Removes packages by winget id or MSI product code.
    """
    flags = RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live)
    _package_command("uninstall", tool, arg, log_dir, timeout, csv, column, list_file, target, flags)


@app.command(name="ensure-service")
def ensure_service(
    wait: float = typer.Option(30, "--wait", help="Seconds to wait for RUNNING after a start."),
    csv: CsvOption = None,
    column: ColumnOption = "Service",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Starts services that are not running.
    """
    _check_single_source(csv=csv, list=list_file, target=target)

    def build(settings: Settings) -> Wiring:
        action = ServiceStartAction(shell=ShellExecutor(timeout=settings.shell_timeout), wait_seconds=wait)
        return action, LocalSessionManager(["sc.exe"]), _file_or_static_source(csv, column, list_file, target)

    _execute(build, RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live))


@app.command(name="register-task")
def register_task(
    task_name: str = typer.Option(..., "--task-name", help="Scheduled task path."),
    command: str = typer.Option(..., "--command", help="Program and arguments the task runs."),
    schedule: str = typer.Option("DAILY", "--schedule", help="MINUTE, HOURLY, DAILY, WEEKLY, ONSTART, ONLOGON."),
    start_time: Optional[str] = typer.Option(None, "--start-time", help="HH:MM start time."),
    run_as: str = typer.Option("SYSTEM", "--run-as", help="Account the task runs as."),
    csv: CsvOption = None,
    column: ColumnOption = "ComputerName",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Registers a scheduled task on each host where it does not exist yet.
    """
    _check_single_source(csv=csv, list=list_file, target=target)

    def build(settings: Settings) -> Wiring:
        config = ScheduledTaskConfig(
            task_name=task_name,
            command=command,
            schedule=schedule.upper(),  # type: ignore[arg-type]
            start_time=start_time,
            run_as=run_as,
        )
        action = ScheduledTaskAction(config, shell=ShellExecutor(timeout=settings.shell_timeout))
        return action, LocalSessionManager(["schtasks.exe"]), _file_or_static_source(csv, column, list_file, target)

    _execute(build, RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live))


@app.command(name="clean-profiles")
def clean_profiles(
    max_age_days: int = typer.Option(90, "--max-age-days", help="Keep profiles used within this many days."),
    exclude_sid: Optional[List[str]] = typer.Option(None, "--exclude-sid", help="SID to keep. Repeat for more."),
    exclude_path: Optional[List[str]] = typer.Option(None, "--exclude-path", help="Profile folder to keep."),
    all_local: bool = typer.Option(False, "--all-local", help="Target every local profile on this machine."),
    csv: CsvOption = None,
    column: ColumnOption = "SID",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Removes stale local user profiles.
    """
    _check_single_source(**{"all-local": all_local, "csv": csv, "list": list_file, "target": target})

    def build(settings: Settings) -> Wiring:
        shell = ShellExecutor(timeout=settings.shell_timeout)
        config = ProfileCleanupConfig(
            max_age_days=max_age_days,
            excluded_sids=exclude_sid or [],
            excluded_paths=exclude_path or [],
        )
        source: IdentitySource
        if all_local:
            source = LocalProfileSource(shell)
        else:
            source = _file_or_static_source(csv, column, list_file, target)
        return ProfileCleanupAction(config, shell=shell), LocalSessionManager(["powershell.exe"]), source

    _execute(build, RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live))


@app.command(name="gpo-filter")
def gpo_filter(
    gpo: str = typer.Option(..., "--gpo", help="Display name of the GPO."),
    target_type: str = typer.Option("Group", "--target-type", help="Group, User or Computer."),
    restrict_authenticated_users: bool = typer.Option(
        False, "--restrict-authenticated-users", help="Downgrade Authenticated Users to GpoRead."
    ),
    csv: CsvOption = None,
    column: ColumnOption = "Name",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Adds security filtering entries (GpoApply) to a GPO.
    """
    _check_single_source(csv=csv, list=list_file, target=target)

    def build(settings: Settings) -> Wiring:
        config = GpoFilterConfig(
            gpo_name=gpo,
            target_type=target_type,  # type: ignore[arg-type]
            restrict_authenticated_users=restrict_authenticated_users,
        )
        action = GpoSecurityFilterAction(config, shell=ShellExecutor(timeout=settings.shell_timeout))
        return action, LocalSessionManager(["powershell.exe"]), _file_or_static_source(csv, column, list_file, target)

    _execute(build, RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live))


@app.command(name="clear-print-queue")
def clear_print_queue(
    computer: Optional[str] = typer.Option(None, "--computer", help="Print server. Defaults to this machine."),
    csv: CsvOption = None,
    column: ColumnOption = "Printer",
    list_file: ListOption = None,
    target: TargetOption = None,
    dry_run: DryRunOption = False,
    confirm: ConfirmOption = None,
    stop_on_error: StopOption = False,
    no_isolate: NoIsolateOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Removes every queued job from the given printers.
    """
    _check_single_source(csv=csv, list=list_file, target=target)

    def build(settings: Settings) -> Wiring:
        action = PrintQueueClearAction(shell=ShellExecutor(timeout=settings.shell_timeout), computer=computer)
        return action, LocalSessionManager(["powershell.exe"]), _file_or_static_source(csv, column, list_file, target)

    _execute(build, RunFlags(dry_run, confirm, stop_on_error, no_isolate, fail_on_error, report, live))


@app.command(name="latency")
def latency(
    count: int = typer.Option(4, "--count", "-c", help="Echo requests per host."),
    threshold_ms: Optional[float] = typer.Option(None, "--threshold-ms", help="Fail hosts slower than this."),
    log_path: Optional[str] = typer.Option(None, "--log", help="CSV file measurements are appended to."),
    csv: CsvOption = None,
    column: ColumnOption = "Host",
    list_file: ListOption = None,
    target: TargetOption = None,
    stop_on_error: StopOption = False,
    fail_on_error: FailOption = False,
    report: ReportOption = None,
    live: LiveOption = False,
) -> None:
    """
    Measures and logs round-trip latency to each host.
    """
    _check_single_source(csv=csv, list=list_file, target=target)

    def build(settings: Settings) -> Wiring:
        config = LatencyConfig(count=count, threshold_ms=threshold_ms, log_path=log_path)
        action = LatencyProbeAction(config, shell=ShellExecutor(timeout=settings.shell_timeout))
        return action, LocalSessionManager(["ping"]), _file_or_static_source(csv, column, list_file, target)

    _execute(build, RunFlags(False, ConfirmMode.NEVER, stop_on_error, False, fail_on_error, report, live))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
