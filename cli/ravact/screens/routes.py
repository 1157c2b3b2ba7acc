from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from ..models import CommandRequest, ServiceStatus, SetupPackage, SiteCommand, ToolkitCommand
from ..parsers import PHPFPMPool, SupervisorProgram
from ..system.frankenphp import FrankenPHPService, FrankenPHPSite, GeneratedFile
from ..system.sshkeys import SSHKey


@dataclass(frozen=True)
class SplashRoute:
    pass


@dataclass(frozen=True)
class MainMenuRoute:
    pass


@dataclass(frozen=True)
class SetupMenuRoute:
    pass


@dataclass(frozen=True)
class SetupActionRoute:
    package: SetupPackage
    status: ServiceStatus


@dataclass(frozen=True)
class InstalledAppsRoute:
    pass


@dataclass(frozen=True)
class PHPInstallRoute:
    pass


@dataclass(frozen=True)
class PHPExtensionsRoute:
    version: str = ""


@dataclass(frozen=True)
class ConfigMenuRoute:
    pass


@dataclass(frozen=True)
class NginxSitesRoute:
    pass


@dataclass(frozen=True)
class SiteDetailsRoute:
    site: str


@dataclass(frozen=True)
class AddSiteRoute:
    pass


@dataclass(frozen=True)
class SSLOptionsRoute:
    site: str
    domain: str


@dataclass(frozen=True)
class SSLManualRoute:
    site: str


@dataclass(frozen=True)
class EditorSelectionRoute:
    path: str


@dataclass(frozen=True)
class RedisConfigRoute:
    pass


@dataclass(frozen=True)
class RedisPasswordRoute:
    pass


@dataclass(frozen=True)
class RedisPortRoute:
    pass


@dataclass(frozen=True)
class MySQLManagementRoute:
    pass


@dataclass(frozen=True)
class MySQLPasswordRoute:
    pass


@dataclass(frozen=True)
class MySQLPortRoute:
    pass


@dataclass(frozen=True)
class CreateDatabaseRoute:
    engine: str  # "mysql" or "postgresql"


@dataclass(frozen=True)
class DatabaseListRoute:
    engine: str


@dataclass(frozen=True)
class PostgreSQLManagementRoute:
    pass


@dataclass(frozen=True)
class PostgreSQLPasswordRoute:
    pass


@dataclass(frozen=True)
class PostgreSQLPortRoute:
    pass


@dataclass(frozen=True)
class PostgreSQLSettingRoute:
    setting: str  # "max_connections" or "shared_buffers"


@dataclass(frozen=True)
class PHPFPMManagementRoute:
    pass


@dataclass(frozen=True)
class PoolListRoute:
    pass


@dataclass(frozen=True)
class PoolDetailsRoute:
    pool: PHPFPMPool


@dataclass(frozen=True)
class PoolFormRoute:
    pool: PHPFPMPool | None = None


@dataclass(frozen=True)
class PoolSelectRoute:
    purpose: str  # "edit" or "delete"
    pools: tuple[PHPFPMPool, ...]


@dataclass(frozen=True)
class SupervisorManagementRoute:
    pass


@dataclass(frozen=True)
class ProgramSelectRoute:
    action: str  # edit, start, stop, restart, delete
    programs: tuple[SupervisorProgram, ...]


@dataclass(frozen=True)
class ProgramFormRoute:
    program: SupervisorProgram | None = None


@dataclass(frozen=True)
class XMLRPCFormRoute:
    pass


@dataclass(frozen=True)
class FirewallManagementRoute:
    pass


@dataclass(frozen=True)
class FirewallRuleFormRoute:
    action: str  # "allow" or "deny"


@dataclass(frozen=True)
class FirewallRuleSelectRoute:
    pass


@dataclass(frozen=True)
class SiteCommandsRoute:
    pass


@dataclass(frozen=True)
class PHPVersionSelectRoute:
    command: SiteCommand


@dataclass(frozen=True)
class CommandListRoute:
    title: str
    commands: tuple[ToolkitCommand, ...]


@dataclass(frozen=True)
class FrankenPHPServicesRoute:
    pass


@dataclass(frozen=True)
class FrankenPHPServiceDetailsRoute:
    service: FrankenPHPService


@dataclass(frozen=True)
class FrankenPHPSiteFormRoute:
    site: FrankenPHPSite | None = None
    new: bool = True


@dataclass(frozen=True)
class FrankenPHPReviewRoute:
    site: FrankenPHPSite
    files: tuple[GeneratedFile, ...]
    new: bool = True


@dataclass(frozen=True)
class GitManagementRoute:
    pass


@dataclass(frozen=True)
class GitConnectionFormRoute:
    pass


@dataclass(frozen=True)
class GitCloneFormRoute:
    pass


@dataclass(frozen=True)
class GitRemoteFormRoute:
    pass


@dataclass(frozen=True)
class GitUserSelectRoute:
    action: str  # git_pull, git_fetch, git_status or remove_remote


@dataclass(frozen=True)
class NodeVersionSelectRoute:
    command: SiteCommand


@dataclass(frozen=True)
class LaravelQueueRoute:
    pass


@dataclass(frozen=True)
class QueueWorkerRoute:
    program: SupervisorProgram


@dataclass(frozen=True)
class QueueWorkerFormRoute:
    program: SupervisorProgram | None = None


@dataclass(frozen=True)
class DeveloperToolkitRoute:
    pass


@dataclass(frozen=True)
class UserManagementRoute:
    pass


@dataclass(frozen=True)
class UserDetailsRoute:
    username: str


@dataclass(frozen=True)
class AddUserRoute:
    pass


@dataclass(frozen=True)
class AddGroupRoute:
    pass


@dataclass(frozen=True)
class GroupDetailsRoute:
    group: str


@dataclass(frozen=True)
class SSHKeysRoute:
    username: str
    home: str


@dataclass(frozen=True)
class SSHKeyDetailsRoute:
    username: str
    home: str
    key: SSHKey


@dataclass(frozen=True)
class SSHKeyGenerateRoute:
    username: str
    home: str


@dataclass(frozen=True)
class QuickCommandsRoute:
    pass


@dataclass(frozen=True)
class FileBrowserRoute:
    path: str = ""


@dataclass(frozen=True)
class ExecutionRoute:
    request: CommandRequest


@dataclass(frozen=True)
class TextDisplayRoute:
    title: str
    text: str


@dataclass(frozen=True)
class ProjectPathRoute:
    pass


@dataclass(frozen=True)
class ConfirmRoute:
    """Yes/no question; ``on_confirm`` returns a notice or a route to open."""

    question: str
    on_confirm: Callable[[], "str | Route"]


@dataclass(frozen=True)
class PromptRoute:
    """Single-field form; ``on_submit`` returns the success notice."""

    title: str
    label: str
    on_submit: Callable[[str], str]
    secret: bool = False
    value: str = ""


Route = Union[
    SplashRoute, MainMenuRoute, SetupMenuRoute, SetupActionRoute, InstalledAppsRoute, PHPInstallRoute,
    PHPExtensionsRoute, ConfigMenuRoute, NginxSitesRoute, SiteDetailsRoute, AddSiteRoute, SSLOptionsRoute,
    SSLManualRoute, EditorSelectionRoute, RedisConfigRoute, RedisPasswordRoute, RedisPortRoute,
    MySQLManagementRoute, MySQLPasswordRoute, MySQLPortRoute, CreateDatabaseRoute, DatabaseListRoute,
    PostgreSQLManagementRoute, PostgreSQLPasswordRoute, PostgreSQLPortRoute, PostgreSQLSettingRoute,
    PHPFPMManagementRoute, PoolListRoute, PoolDetailsRoute, PoolFormRoute, PoolSelectRoute,
    SupervisorManagementRoute, ProgramSelectRoute, ProgramFormRoute, XMLRPCFormRoute,
    FirewallManagementRoute, FirewallRuleFormRoute, FirewallRuleSelectRoute, SiteCommandsRoute,
    PHPVersionSelectRoute, CommandListRoute, FrankenPHPServicesRoute, FrankenPHPServiceDetailsRoute,
    FrankenPHPSiteFormRoute, FrankenPHPReviewRoute, GitManagementRoute, GitConnectionFormRoute, GitCloneFormRoute,
    GitRemoteFormRoute, GitUserSelectRoute, NodeVersionSelectRoute, LaravelQueueRoute, QueueWorkerRoute,
    QueueWorkerFormRoute, DeveloperToolkitRoute, UserManagementRoute, UserDetailsRoute, AddUserRoute, AddGroupRoute,
    GroupDetailsRoute, SSHKeysRoute, SSHKeyDetailsRoute, SSHKeyGenerateRoute, QuickCommandsRoute, FileBrowserRoute,
    ExecutionRoute, TextDisplayRoute, ProjectPathRoute, ConfirmRoute, PromptRoute,
]
