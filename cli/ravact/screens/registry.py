from __future__ import annotations

from . import routes as r
from .common import (
    ConfirmScreen,
    EditorSelectionScreen,
    ExecutionScreen,
    ProjectPathScreen,
    PromptScreen,
    TextDisplayScreen,
)
from .databases import (
    CreateDatabaseScreen,
    DatabaseListScreen,
    MySQLManagementScreen,
    MySQLPasswordScreen,
    MySQLPortScreen,
    PostgreSQLManagementScreen,
    PostgreSQLPasswordScreen,
    PostgreSQLPortScreen,
    PostgreSQLSettingScreen,
)
from .files import FileBrowserScreen
from .firewall import FirewallManagementScreen, FirewallRuleFormScreen, FirewallRuleSelectScreen
from .git import (
    GitCloneFormScreen,
    GitConnectionFormScreen,
    GitManagementScreen,
    GitRemoteFormScreen,
    GitUserSelectScreen,
)
from .menus import ConfigMenuScreen, MainMenuScreen, QuickCommandsScreen, SplashScreen
from .nginx import AddSiteScreen, NginxSitesScreen, SiteDetailsScreen, SSLManualScreen, SSLOptionsScreen
from .phpfpm import PHPFPMManagementScreen, PoolDetailsScreen, PoolFormScreen, PoolListScreen, PoolSelectScreen
from .queue import LaravelQueueScreen, QueueWorkerFormScreen, QueueWorkerScreen
from .redis import RedisConfigScreen, RedisPasswordScreen, RedisPortScreen
from .setup import InstalledAppsScreen, PHPExtensionsScreen, PHPInstallScreen, SetupActionScreen, SetupMenuScreen
from .sites import (
    FrankenPHPReviewScreen,
    FrankenPHPServiceDetailsScreen,
    FrankenPHPServicesScreen,
    FrankenPHPSiteFormScreen,
    NodeVersionSelectScreen,
    PHPVersionSelectScreen,
    SiteCommandsScreen,
)
from .sshkeys import SSHKeyDetailsScreen, SSHKeyGenerateScreen, SSHKeysScreen
from .supervisor import ProgramFormScreen, ProgramSelectScreen, SupervisorManagementScreen, XMLRPCFormScreen
from .toolkit import CommandListScreen, DeveloperToolkitScreen
from .users import AddGroupScreen, AddUserScreen, GroupDetailsScreen, UserDetailsScreen, UserManagementScreen

SCREENS = {
    r.SplashRoute: SplashScreen,
    r.MainMenuRoute: MainMenuScreen,
    r.SetupMenuRoute: SetupMenuScreen,
    r.SetupActionRoute: SetupActionScreen,
    r.InstalledAppsRoute: InstalledAppsScreen,
    r.PHPInstallRoute: PHPInstallScreen,
    r.PHPExtensionsRoute: PHPExtensionsScreen,
    r.ConfigMenuRoute: ConfigMenuScreen,
    r.NginxSitesRoute: NginxSitesScreen,
    r.SiteDetailsRoute: SiteDetailsScreen,
    r.AddSiteRoute: AddSiteScreen,
    r.SSLOptionsRoute: SSLOptionsScreen,
    r.SSLManualRoute: SSLManualScreen,
    r.EditorSelectionRoute: EditorSelectionScreen,
    r.RedisConfigRoute: RedisConfigScreen,
    r.RedisPasswordRoute: RedisPasswordScreen,
    r.RedisPortRoute: RedisPortScreen,
    r.MySQLManagementRoute: MySQLManagementScreen,
    r.MySQLPasswordRoute: MySQLPasswordScreen,
    r.MySQLPortRoute: MySQLPortScreen,
    r.CreateDatabaseRoute: CreateDatabaseScreen,
    r.DatabaseListRoute: DatabaseListScreen,
    r.PostgreSQLManagementRoute: PostgreSQLManagementScreen,
    r.PostgreSQLPasswordRoute: PostgreSQLPasswordScreen,
    r.PostgreSQLPortRoute: PostgreSQLPortScreen,
    r.PostgreSQLSettingRoute: PostgreSQLSettingScreen,
    r.PHPFPMManagementRoute: PHPFPMManagementScreen,
    r.PoolListRoute: PoolListScreen,
    r.PoolDetailsRoute: PoolDetailsScreen,
    r.PoolFormRoute: PoolFormScreen,
    r.PoolSelectRoute: PoolSelectScreen,
    r.SupervisorManagementRoute: SupervisorManagementScreen,
    r.ProgramSelectRoute: ProgramSelectScreen,
    r.ProgramFormRoute: ProgramFormScreen,
    r.XMLRPCFormRoute: XMLRPCFormScreen,
    r.FirewallManagementRoute: FirewallManagementScreen,
    r.FirewallRuleFormRoute: FirewallRuleFormScreen,
    r.FirewallRuleSelectRoute: FirewallRuleSelectScreen,
    r.SiteCommandsRoute: SiteCommandsScreen,
    r.PHPVersionSelectRoute: PHPVersionSelectScreen,
    r.CommandListRoute: CommandListScreen,
    r.FrankenPHPServicesRoute: FrankenPHPServicesScreen,
    r.FrankenPHPServiceDetailsRoute: FrankenPHPServiceDetailsScreen,
    r.FrankenPHPSiteFormRoute: FrankenPHPSiteFormScreen,
    r.FrankenPHPReviewRoute: FrankenPHPReviewScreen,
    r.GitManagementRoute: GitManagementScreen,
    r.GitConnectionFormRoute: GitConnectionFormScreen,
    r.GitCloneFormRoute: GitCloneFormScreen,
    r.GitRemoteFormRoute: GitRemoteFormScreen,
    r.GitUserSelectRoute: GitUserSelectScreen,
    r.NodeVersionSelectRoute: NodeVersionSelectScreen,
    r.LaravelQueueRoute: LaravelQueueScreen,
    r.QueueWorkerRoute: QueueWorkerScreen,
    r.QueueWorkerFormRoute: QueueWorkerFormScreen,
    r.DeveloperToolkitRoute: DeveloperToolkitScreen,
    r.UserManagementRoute: UserManagementScreen,
    r.UserDetailsRoute: UserDetailsScreen,
    r.AddUserRoute: AddUserScreen,
    r.AddGroupRoute: AddGroupScreen,
    r.GroupDetailsRoute: GroupDetailsScreen,
    r.SSHKeysRoute: SSHKeysScreen,
    r.SSHKeyDetailsRoute: SSHKeyDetailsScreen,
    r.SSHKeyGenerateRoute: SSHKeyGenerateScreen,
    r.QuickCommandsRoute: QuickCommandsScreen,
    r.FileBrowserRoute: FileBrowserScreen,
    r.ExecutionRoute: ExecutionScreen,
    r.TextDisplayRoute: TextDisplayScreen,
    r.ProjectPathRoute: ProjectPathScreen,
    r.ConfirmRoute: ConfirmScreen,
    r.PromptRoute: PromptScreen,
}
