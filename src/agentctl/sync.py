# Sync orchestration for agentctl
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from agentctl.adapters.base import (
    RESOURCE_COMMANDS,
    RESOURCE_RULES,
    RESOURCE_SERVERS,
    RESOURCE_SKILLS,
    Adapter,
    CommandsAdapter,
    RulesAdapter,
    ServerAdapter,
    SkillsAdapter,
    WorkspaceAdapter,
    as_capability,
)
from agentctl.config import Config
from agentctl.models import Server
from agentctl.scope import Scope
from agentctl.state import SyncState, target_key
from agentctl.utils.backup import create_backup
from agentctl.utils.validation import validate_server

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerDiff:
    """Classification of server keys for one target.

    ABOUTME: All lists are sorted so identical inputs always give identical output
    ABOUTME: unmanaged entries are user-authored and never touched
    """
    to_add: list[str] = field(default_factory=list)
    to_update: list[str] = field(default_factory=list)
    unmanaged: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.to_add or self.to_update or self.to_remove)


def compute_server_diff(
    existing: Iterable[str] | Mapping[str, Server],
    desired: list[Server],
    managed_names: Iterable[str],
) -> ServerDiff:
    """Diff what a target holds against what it should hold.

    ABOUTME: Keys are Server.key (namespace if set, else name)
    ABOUTME: to_update is every desired key already present; it is always overwritten
    ABOUTME: Keys present but not desired go to to_remove only if the ledger says we wrote them

    Examples:
        >>> diff = compute_server_diff({"a", "user"}, [Server(name="a"), Server(name="b")], ["a", "old"])
        >>> diff.to_add, diff.to_update, diff.unmanaged
        (['b'], ['a'], ['user'])
    """
    current = set(existing)
    wanted = {server.key for server in desired}
    managed = set(managed_names)

    stale = current - wanted
    return ServerDiff(
        to_add=sorted(wanted - current),
        to_update=sorted(wanted & current),
        unmanaged=sorted(stale - managed),
        to_remove=sorted(stale & managed),
    )


@dataclass
class TargetPlan:
    """One file an adapter will write servers into.

    ABOUTME: project_dir is set for workspace targets, None for the tool's global config
    ABOUTME: partial targets only add and update; their ledger entries are never pruned
    """
    key: str
    path: Path
    servers: list[Server]
    diff: ServerDiff
    project_dir: Path | None = None
    partial: bool = False


@dataclass
class SyncPlan:
    adapter: str
    targets: list[TargetPlan] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _split_by_scope(servers: list[Server]) -> tuple[list[Server], list[Server]]:
    global_servers: list[Server] = []
    local_servers: list[Server] = []
    for server in servers:
        if server.scope == Scope.LOCAL.value:
            local_servers.append(server)
        else:
            global_servers.append(server)
    return global_servers, local_servers


def plan_sync(
    adapter: Adapter,
    servers: list[Server],
    state: SyncState,
    project_dir: Path | None = None,
    scope: Scope = Scope.ALL,
) -> SyncPlan:
    """Work out what syncing servers into adapter would change.

    ABOUTME: Shared by dry-run and real sync so the preview is exactly what runs
    ABOUTME: Local servers go to the workspace config when the tool has one, else fold into global
    ABOUTME: Remote servers on stdio-only tools are listed in skipped
    ABOUTME: Reads tool config files but never writes anything
    """
    plan = SyncPlan(adapter=adapter.name)

    server_adapter, ok = as_capability(adapter, ServerAdapter)
    if not ok or RESOURCE_SERVERS not in adapter.supported_resources:
        return plan

    representable: list[Server] = []
    for server in servers:
        if adapter.supports(server):
            representable.append(server)
        else:
            plan.skipped.append(server.name)
            logger.debug(f"{adapter.name}: skipping {server.transport} server '{server.name}'")

    global_servers, local_servers = _split_by_scope(representable)

    workspace, has_workspace = as_capability(adapter, WorkspaceAdapter)
    use_workspace = has_workspace and project_dir is not None

    folded = False
    if local_servers and not use_workspace:
        folded = True
        reason = "no project directory" if has_workspace else "no project-level config"
        message = (
            f"{adapter.name}: {reason}; writing local servers "
            f"{', '.join(s.name for s in local_servers)} to the global config"
        )
        logger.warning(message)
        plan.warnings.append(message)
        global_servers = global_servers + local_servers

    plan_global = scope is not Scope.LOCAL or folded
    if plan_global:
        key = target_key(adapter.name)
        partial = scope is Scope.LOCAL
        existing = server_adapter.read_servers()
        plan.targets.append(TargetPlan(
            key=key,
            path=adapter.config_path,
            servers=global_servers,
            diff=compute_server_diff(existing, global_servers, () if partial else state.get_managed(key)),
            partial=partial,
        ))

    if use_workspace and scope is not Scope.GLOBAL:
        key = target_key(adapter.name, project_dir)
        existing = workspace.read_workspace_servers(project_dir)
        plan.targets.append(TargetPlan(
            key=key,
            path=workspace.workspace_config_path(project_dir),
            servers=local_servers,
            diff=compute_server_diff(existing, local_servers, state.get_managed(key)),
            project_dir=project_dir,
        ))

    return plan


@dataclass
class AdapterResult:
    """Outcome of syncing one tool."""
    adapter: str
    plan: SyncPlan | None = None
    servers_written: int = 0
    servers_removed: int = 0
    commands_synced: int = 0
    rules_synced: int = 0
    skills_synced: int = 0
    backups: list[Path] = field(default_factory=list)
    error: str = ""

    @property
    def success(self) -> bool:
        return not self.error


@dataclass
class SyncReport:
    """Report from sync operation.

    ABOUTME: Tracks success/failure across tools
    ABOUTME: Contains per-tool results and any errors
    """
    dry_run: bool = False
    results: list[AdapterResult] = field(default_factory=list)
    tools_succeeded: list[str] = field(default_factory=list)
    tools_failed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add_result(self, result: AdapterResult) -> None:
        self.results.append(result)
        if result.success:
            self.tools_succeeded.append(result.adapter)
        else:
            self.tools_failed.append(result.adapter)
            self.add_error(f"{result.adapter}: {result.error}")

    def add_error(self, error: str) -> None:
        """Record an error that occurred during sync.

        ABOUTME: Errors are non-fatal, sync continues
        """
        self.errors.append(error)

    @property
    def ok(self) -> bool:
        return not self.errors


def _ledger_after(target: TargetPlan, state: SyncState, clean: bool) -> list[str]:
    names = {server.key for server in target.servers}
    if not clean:
        names.update(target.diff.to_remove)
    if target.partial:
        names.update(state.get_managed(target.key))
    return sorted(names)


def apply_plan(
    adapter: Adapter,
    plan: SyncPlan,
    state: SyncState,
    clean: bool = False,
    backup_dir: Path | None = None,
) -> AdapterResult:
    """Write a plan's targets and record them in the ledger.

    ABOUTME: Backs up each existing target file before writing
    ABOUTME: to_remove entries are deleted only when clean is set
    ABOUTME: The ledger is saved after every target so a later failure keeps earlier records
    """
    result = AdapterResult(adapter=adapter.name, plan=plan)

    for target in plan.targets:
        remove = target.diff.to_remove if clean else []
        if target.servers or remove:
            _write_target(adapter, target, remove, backup_dir, result)

        state.set_managed(target.key, _ledger_after(target, state, clean))
        if state.path is not None:
            state.save()

    return result


def _write_target(
    adapter: Adapter,
    target: TargetPlan,
    remove: list[str],
    backup_dir: Path | None,
    result: AdapterResult,
) -> None:
    if backup_dir is not None and target.path.exists():
        label = adapter.name if target.project_dir is None else f"{adapter.name}-workspace"
        result.backups.append(create_backup(target.path, backup_dir, label=label))

    if target.project_dir is None:
        adapter.write_servers(target.servers, remove=remove)  # type: ignore[attr-defined]
    else:
        adapter.write_workspace_servers(  # type: ignore[attr-defined]
            target.project_dir, target.servers, remove=remove
        )
    logger.debug(f"Wrote {len(target.servers)} server(s) to {target.path}")

    result.servers_written += len(target.servers)
    result.servers_removed += len(remove)


def sync_resources(adapter: Adapter, config: Config, scope: Scope, dry_run: bool = False) -> AdapterResult:
    """Write commands, rules and skills through whichever capabilities adapter has."""
    result = AdapterResult(adapter=adapter.name)

    commands = config.commands_for_scope(scope)
    commands_adapter, ok = as_capability(adapter, CommandsAdapter)
    if ok and commands and RESOURCE_COMMANDS in adapter.supported_resources:
        if not dry_run:
            commands_adapter.write_commands(commands)
        result.commands_synced = len(commands)

    rules = config.rules_for_scope(scope)
    rules_adapter, ok = as_capability(adapter, RulesAdapter)
    if ok and rules and RESOURCE_RULES in adapter.supported_resources:
        if not dry_run:
            rules_adapter.write_rules(rules)
        result.rules_synced = len(rules)

    skills = config.skills_for_scope(scope)
    skills_adapter, ok = as_capability(adapter, SkillsAdapter)
    if ok and skills and RESOURCE_SKILLS in adapter.supported_resources:
        if not dry_run:
            skills_adapter.write_skills(skills)
        result.skills_synced = len(skills)

    return result


def servers_to_sync(config: Config, scope: Scope, profiles_dir: Path | None = None) -> list[Server]:
    """Active servers (profile applied, disabled removed) restricted to scope."""
    servers = config.active_servers(profiles_dir)
    if scope is Scope.ALL:
        return servers
    want_local = scope is Scope.LOCAL
    return [s for s in servers if (s.scope == Scope.LOCAL.value) == want_local]


def sync_all(
    config: Config,
    adapters: list[Adapter],
    state: SyncState,
    scope: Scope = Scope.ALL,
    clean: bool = False,
    dry_run: bool = False,
    project_dir: Path | None = None,
    backup_dir: Path | None = None,
    profiles_dir: Path | None = None,
) -> SyncReport:
    """Sync config to every enabled, detected tool.

    ABOUTME: Validates servers first and returns early on errors, nothing is written
    ABOUTME: Skips tools that are not installed or disabled in settings.tools
    ABOUTME: Continues on tool errors, records them in report
    ABOUTME: dry_run plans only: no tool files, backups or ledger writes

    Examples:
        >>> config = load_with_project()
        >>> report = sync_all(config, default_registry().all(), load_state(default_config_dir()))
        >>> print(f"Synced {len(report.tools_succeeded)} tools")
        Synced 3 tools
    """
    report = SyncReport(dry_run=dry_run)
    servers = servers_to_sync(config, scope, profiles_dir)
    project_dir = project_dir or config.project_dir

    # Validate all servers first (fail-fast on config errors)
    for server in servers:
        for err in validate_server(server):
            if err.is_error:
                report.add_error(f"Server '{server.name}': {err.message}")
    if report.errors:
        return report

    for adapter in adapters:
        if not config.settings.tool_enabled(adapter.name):
            logger.debug(f"Skipping {adapter.name}: disabled in settings")
            continue
        if not adapter.detect():
            logger.debug(f"Skipping {adapter.name}: not installed")
            continue

        try:
            plan = plan_sync(adapter, servers, state, project_dir=project_dir, scope=scope)
            if dry_run:
                result = AdapterResult(adapter=adapter.name, plan=plan)
            else:
                result = apply_plan(adapter, plan, state, clean=clean, backup_dir=backup_dir)

            resources = sync_resources(adapter, config, scope, dry_run=dry_run)
            result.commands_synced = resources.commands_synced
            result.rules_synced = resources.rules_synced
            result.skills_synced = resources.skills_synced
        except (OSError, ValueError) as e:
            result = AdapterResult(adapter=adapter.name, error=str(e))

        report.add_result(result)

    return report


def merge_servers(existing: Mapping[str, Server], new: Iterable[Server]) -> dict[str, Server]:
    """Merge new servers over existing ones by key.

    ABOUTME: Preserves existing servers not in the new set
    ABOUTME: New servers override existing ones with the same key
    ABOUTME: Returns new dict (doesn't mutate inputs)

    Examples:
        >>> existing = {"a": Server(name="a", command="old"), "b": Server(name="b", command="npx")}
        >>> merged = merge_servers(existing, [Server(name="a", command="npx")])
        >>> sorted(merged), merged["a"].command
        (['a', 'b'], 'npx')
    """
    result: dict[str, Server] = dict(existing)
    for server in new:
        result[server.key] = server
    return result


@dataclass
class ImportReport:
    """Servers discovered in installed tools.

    ABOUTME: Deduplicated by name; tools later in the list win on conflicts
    """
    servers: dict[str, Server] = field(default_factory=dict)
    tools_scanned: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


def import_servers(adapters: list[Adapter]) -> ImportReport:
    """Collect existing MCP servers from every detected tool.

    ABOUTME: Imported servers get a manual source; nothing is written
    ABOUTME: Unreadable tool configs are recorded and skipped
    """
    report = ImportReport()

    for adapter in adapters:
        server_adapter, ok = as_capability(adapter, ServerAdapter)
        if not ok or not adapter.detect():
            continue
        try:
            servers = server_adapter.read_servers()
        except (OSError, ValueError) as e:
            report.errors.append(f"{adapter.name}: {e}")
            continue
        if servers:
            report.servers.update(servers)
            report.tools_scanned[adapter.name] = len(servers)

    return report
