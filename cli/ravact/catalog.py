from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .models import MenuItem, QuickCommand, ServiceStatus, ServiceType, SetupPackage, SiteCommand, ToolkitCommand
from .runner import validate_script

MAIN_MENU = (
    MenuItem("setup", "Install Software", "Install server packages (Nginx, MySQL, PHP, Redis, etc.)", "Package Management"),
    MenuItem("installed", "Installed Applications", "View and manage installed services", "Package Management"),
    MenuItem("config", "Service Settings", "Configure Nginx, MySQL, PostgreSQL, Redis, PHP-FPM, etc.", "Service Configuration"),
    MenuItem("site_commands", "Site Commands", "Git, Laravel, Composer, NPM, and deployment tools", "Site Management"),
    MenuItem("toolkit", "Developer Toolkit", "Essential commands for Laravel & WordPress maintenance", "Site Management"),
    MenuItem("users", "User Management", "Manage users, groups, and sudo privileges", "System Administration"),
    MenuItem("quick", "Quick Commands", "System diagnostics, logs, and service controls", "System Administration"),
    MenuItem("files", "File Browser", "Browse directories and preview files", "Tools"),
    MenuItem("project", "Project Directory", "Working directory for site and toolkit commands", "Tools"),
)

CONFIG_MENU = (
    MenuItem("nginx", "Nginx Web Server", "Manage sites, SSL and virtual hosts"),
    MenuItem("redis", "Redis Cache", "Password, port and connection test"),
    MenuItem("mysql", "MySQL Database", "Root password, port, databases"),
    MenuItem("postgresql", "PostgreSQL Database", "Password, port, performance settings"),
    MenuItem("phpfpm", "PHP-FPM Pools", "Manage PHP-FPM worker pools"),
    MenuItem("supervisor", "Supervisor", "Manage background programs and XML-RPC"),
    MenuItem("firewall", "Firewall", "UFW / firewalld rules"),
    MenuItem("frankenphp", "FrankenPHP Services", "Manage frankenphp-* systemd services"),
)

QUICK_COMMANDS = (
    QuickCommand("restart-nginx", "Restart Nginx", "Restart the Nginx web server",
                 "systemctl restart nginx", require_root=True, confirm=True),
    QuickCommand("reload-nginx", "Reload Nginx Configuration", "Reload Nginx configuration without dropping connections",
                 "systemctl reload nginx", require_root=True),
    QuickCommand("test-nginx", "Test Nginx Configuration", "Test Nginx configuration for syntax errors",
                 "nginx -t", require_root=True),
    QuickCommand("view-nginx-status", "View Nginx Status", "Show Nginx service status",
                 "systemctl status nginx --no-pager"),
    QuickCommand("view-error-log", "View Nginx Error Log", "Display last 50 lines of Nginx error log",
                 "tail -n 50 /var/log/nginx/error.log", require_root=True),
    QuickCommand("view-access-log", "View Nginx Access Log", "Display last 50 lines of Nginx access log",
                 "tail -n 50 /var/log/nginx/access.log", require_root=True),
    QuickCommand("disk-usage", "Check Disk Usage", "Show disk space usage", "df -h"),
    QuickCommand("memory-usage", "Check Memory Usage", "Show memory usage statistics", "free -h"),
    QuickCommand("top-processes", "View Top Processes", "Show top CPU-consuming processes",
                 "ps aux --sort=-pcpu | head -20"),
    QuickCommand("system-info", "System Information", "Display system information", "uname -a"),
)
# First block of QUICK_COMMANDS is rendered under "Nginx Commands".
NGINX_QUICK_COUNT = 6

LARAVEL = "Laravel"
WORDPRESS = "WordPress"
PHP = "PHP"
SECURITY = "Security"
TOOLKIT_CATEGORIES = (LARAVEL, WORDPRESS, PHP, SECURITY)


def _tk(name, description, command, category, needs_path=False):
    return ToolkitCommand(name=name, description=description, command=command, category=category, needs_path=needs_path)


TOOLKIT_COMMANDS = (
    _tk("Tail Laravel Log", "Watch Laravel log file in real-time",
        "tail -n 200 storage/logs/laravel.log", LARAVEL, True),
    _tk("Clear Laravel Log", "Truncate Laravel log file to zero bytes",
        "truncate -s 0 storage/logs/laravel.log", LARAVEL, True),
    _tk("Find Large Log Files", "Find log files larger than 100MB",
        "find storage/logs -type f -size +100M -exec ls -lh {} \\;", LARAVEL, True),
    _tk("Fix Storage Permissions", "Set correct permissions for storage & bootstrap/cache",
        "chmod -R 775 storage bootstrap/cache && chown -R www-data:www-data storage bootstrap/cache", LARAVEL, True),
    _tk("Generate APP_KEY", "Generate a new Laravel APP_KEY (base64)",
        'echo "base64:$(openssl rand -base64 32)"', LARAVEL),
    _tk("Check .env File", "Display environment configuration (hides sensitive values)",
        "cat .env | grep -E '^(APP_|DB_HOST|DB_DATABASE|CACHE_|QUEUE_|MAIL_MAILER)' | sed 's/=.*/=***/'", LARAVEL, True),
    _tk("List Scheduled Tasks", "Show crontab entries for Laravel scheduler",
        "crontab -l | grep -E 'artisan|schedule'", LARAVEL),
    _tk("Check Queue Workers", "List running queue worker processes",
        "ps aux | grep -E 'queue:work|queue:listen' | grep -v grep", LARAVEL),
    _tk("Find Recently Modified Files", "Find files modified in the last 24 hours",
        "find . -type f -mtime -1 -not -path './vendor/*' -not -path './node_modules/*' | head -50", LARAVEL, True),
    _tk("Fix wp-content Permissions", "Set correct permissions for wp-content directory",
        "find wp-content -type d -exec chmod 755 {} \\; && find wp-content -type f -exec chmod 644 {} \\; "
        "&& chown -R www-data:www-data wp-content", WORDPRESS, True),
    _tk("Find Large Uploads", "Find uploaded files larger than 10MB",
        "find wp-content/uploads -type f -size +10M -exec ls -lh {} \\;", WORDPRESS, True),
    _tk("Clear Cache Files", "Remove all files from wp-content/cache",
        "rm -rf wp-content/cache/* && echo 'Cache cleared'", WORDPRESS, True),
    _tk("Generate WP Salts", "Fetch fresh security salts from WordPress API",
        "curl -s https://api.wordpress.org/secret-key/1.1/salt/", WORDPRESS),
    _tk("Check wp-config.php", "Display database and debug settings",
        "grep -E \"^define\\('(DB_|WP_DEBUG)\" wp-config.php", WORDPRESS, True),
    _tk("List Plugins", "List all installed plugins with details", "ls -la wp-content/plugins/", WORDPRESS, True),
    _tk("List Themes", "List all installed themes", "ls -la wp-content/themes/", WORDPRESS, True),
    _tk("Check .htaccess", "Display .htaccess contents", "cat .htaccess", WORDPRESS, True),
    _tk("Find Modified Core Files", "Find WordPress core files modified in last 7 days",
        "find . -type f -mtime -7 -not -path './wp-content/*' -name '*.php' | head -30", WORDPRESS, True),
    _tk("Check PHP Version", "Display installed PHP version", "php -v", PHP),
    _tk("List PHP Modules", "List all installed PHP modules", "php -m", PHP),
    _tk("Check PHP Memory Limit", "Display PHP memory limit setting", "php -i | grep -E '^memory_limit'", PHP),
    _tk("Check PHP Upload Limits", "Display upload and post size limits",
        "php -i | grep -E '^(upload_max_filesize|post_max_size|max_execution_time)'", PHP),
    _tk("Find php.ini Location", "Show loaded PHP configuration file path",
        "php --ini | grep 'Loaded Configuration'", PHP),
    _tk("Check OPcache Status", "Display OPcache configuration", "php -i | grep -E '^opcache\\.'", PHP),
    _tk("Test PHP Syntax", "Check PHP files for syntax errors",
        "find . -name '*.php' -not -path './vendor/*' -exec php -l {} \\; 2>&1 | grep -v 'No syntax errors'", PHP, True),
    _tk("List PHP-FPM Pools", "Show PHP-FPM pool configurations", "ls -la /etc/php/*/fpm/pool.d/", PHP),
    _tk("Scan for Malware Patterns", "Search for common malware signatures in PHP files",
        "grep -r -l -E 'eval\\(base64_decode|eval\\(gzinflate|eval\\(str_rot13' --include='*.php' . 2>/dev/null | head -20",
        SECURITY, True),
    _tk("Find World-Writable Files", "List files with dangerous 777 permissions",
        "find . -type f -perm 0777 2>/dev/null | head -20", SECURITY, True),
    _tk("Find World-Writable Dirs", "List directories with 777 permissions",
        "find . -type d -perm 0777 2>/dev/null | head -20", SECURITY, True),
    _tk("Check for Suspicious Files", "Find PHP files in upload directories",
        "find wp-content/uploads -name '*.php' -o -name '*.phtml' 2>/dev/null", SECURITY, True),
    _tk("List Failed SSH Logins", "Show recent failed SSH authentication attempts",
        "grep 'Failed password' /var/log/auth.log 2>/dev/null | tail -20 "
        "|| journalctl -u ssh --no-pager | grep 'Failed' | tail -20", SECURITY),
    _tk("Check Open Ports", "List all listening ports and services", "ss -tulpn | grep LISTEN", SECURITY),
    _tk("Check SSL Certificate", "Display SSL certificate expiry for localhost",
        "echo | openssl s_client -servername localhost -connect localhost:443 2>/dev/null | openssl x509 -noout -dates",
        SECURITY),
    _tk("Find SUID Files", "List files with SUID bit set (potential security risk)",
        "find / -perm -4000 -type f 2>/dev/null | head -20", SECURITY),
)


def toolkit_commands(category: str) -> list[ToolkitCommand]:
    return [c for c in TOOLKIT_COMMANDS if c.category == category]


FPCLI_CHECK = """if [ ! -f /usr/local/bin/fpcli ]; then
    echo "Error: /usr/local/bin/fpcli not found!"
    echo "Please set up FrankenPHP Classic Mode first to create the fpcli wrapper."
    exit 1
fi"""

PHP_SYMLINK_SCRIPT = FPCLI_CHECK + """
if [ -f /usr/local/bin/php ] && [ ! -L /usr/local/bin/php ]; then
    echo "Backing up existing /usr/local/bin/php to /usr/local/bin/php.bak"
    mv /usr/local/bin/php /usr/local/bin/php.bak
fi
ln -sf /usr/local/bin/fpcli /usr/local/bin/php
hash -r 2>/dev/null || true
echo "✓ Created symlink: /usr/local/bin/php -> /usr/local/bin/fpcli"
echo "  Location: $(which php)"
php -v
echo "Note: System PHP (if installed) is still available at /usr/bin/php"
"""

FPCLI_COMPOSER_SCRIPT = FPCLI_CHECK + """
if [ -f /usr/local/bin/composer.phar ]; then
    COMPOSER_CMD="/usr/local/bin/fpcli /usr/local/bin/composer.phar"
elif command -v composer >/dev/null 2>&1; then
    COMPOSER_CMD="/usr/local/bin/fpcli $(which composer)"
else
    echo "Error: Composer not found!"
    echo "Install it with: curl -sS https://getcomposer.org/installer | fpcli"
    exit 1
fi
echo "Running: $COMPOSER_CMD install"
$COMPOSER_CMD install
echo "✓ Composer install completed!"
"""

SITE_COMMANDS = (
    SiteCommand("git", "Git Operations", "Manage Git repository, remotes, and connections"),
    SiteCommand("frankenphp", "FrankenPHP Classic Mode", "Set up FrankenPHP sites with systemd + Nginx"),
    SiteCommand("setup_php_symlink", "Setup PHP → FrankenPHP Symlink", "Create php → fpcli symlink for CLI commands",
                command=PHP_SYMLINK_SCRIPT),
    SiteCommand("laravel", "Laravel Permissions", "Set proper file permissions for Laravel projects"),
    SiteCommand("laravel_queue", "Laravel Queue Workers", "Manage supervisor programs running artisan queue:work"),
    SiteCommand("npm_install", "NPM Install", "Run npm install in the project directory", command="npm install"),
    SiteCommand("npm_build", "NPM Build", "Run npm run build (production build)",
                command="npm install && npm run build"),
    SiteCommand("composer_install", "Composer Install", "Run composer install using system PHP",
                command="{php} $(which composer) install --no-interaction", needs_php=True),
    SiteCommand("composer_install_fpcli", "Composer Install (FrankenPHP)", "Run composer install using fpcli (FrankenPHP)",
                command=FPCLI_COMPOSER_SCRIPT),
    SiteCommand("artisan_migrate", "Artisan Migrate", "Run php artisan migrate",
                command="{php} artisan migrate --force", needs_php=True),
    SiteCommand("artisan_cache_clear", "Artisan Clear All Caches", "Clear config, route, view, and application cache",
                command="{php} artisan config:clear && {php} artisan route:clear && {php} artisan view:clear "
                        "&& {php} artisan cache:clear && echo '✓ All caches cleared'",
                needs_php=True),
    SiteCommand("artisan_optimize", "Artisan Optimize", "Run php artisan optimize for production",
                command="{php} artisan optimize", needs_php=True),
)

LARAVEL_PERMISSIONS = (
    ToolkitCommand("Standard Permissions", "Directories 755, files 644",
                   "find . -type d -exec chmod 755 {} \\; && find . -type f -exec chmod 644 {} \\;", LARAVEL, True),
    ToolkitCommand("Storage & Cache Writable", "storage and bootstrap/cache writable by www-data",
                   "chmod -R 775 storage bootstrap/cache && chown -R $(stat -c %U .):www-data storage bootstrap/cache",
                   LARAVEL, True),
    ToolkitCommand("Full Reset", "Standard permissions plus writable storage",
                   "find . -type d -exec chmod 755 {} \\; && find . -type f -exec chmod 644 {} \\; "
                   "&& chmod -R 775 storage bootstrap/cache && chown -R $(stat -c %U .):www-data .", LARAVEL, True),
    ToolkitCommand("Secure .env", "Restrict .env to its owner", "chmod 600 .env", LARAVEL, True),
    ToolkitCommand("Make artisan Executable", "chmod +x artisan", "chmod +x artisan", LARAVEL, True),
    ToolkitCommand("Clear Framework Cache Files", "Remove compiled views, sessions and cached config",
                   "rm -rf storage/framework/cache/data/* storage/framework/views/* "
                   "storage/framework/sessions/* bootstrap/cache/*.php", LARAVEL, True),
    ToolkitCommand("Show Current Permissions", "List storage, bootstrap/cache and .env",
                   "echo '=== Storage ===' && ls -la storage/ && echo '=== Bootstrap/Cache ===' "
                   "&& ls -la bootstrap/cache/ && echo '=== .env ===' && (ls -la .env 2>/dev/null || echo '.env not found')",
                   LARAVEL, True),
)


def _apt(package: str) -> str:
    return f"apt-get update && DEBIAN_FRONTEND=noninteractive apt-get install -y {package}"


def _pkg(pid, name, description, service, type_, packages, binary_only=False):
    return SetupPackage(
        id=pid,
        name=name,
        description=description,
        service=service,
        type=type_,
        install=_apt(packages),
        remove=f"apt-get remove -y {packages}",
        binary_only=binary_only,
    )


SETUP_PACKAGES = (
    _pkg("nginx", "Nginx Web Server", "High-performance HTTP server and reverse proxy",
         "nginx", ServiceType.WEB, "nginx"),
    _pkg("mysql", "MySQL Database", "Popular open-source relational database",
         "mysql", ServiceType.DATABASE, "mysql-server"),
    _pkg("postgresql", "PostgreSQL", "Advanced open-source relational database",
         "postgresql", ServiceType.DATABASE, "postgresql postgresql-contrib"),
    _pkg("redis", "Redis Cache", "In-memory data structure store and cache",
         "redis-server", ServiceType.CACHE, "redis-server"),
    _pkg("php", "PHP", "PHP versions and extensions management",
         "php-fpm", ServiceType.WEB, "php-fpm"),
    _pkg("supervisor", "Supervisor", "Process control system for Unix-like systems",
         "supervisor", ServiceType.QUEUE, "supervisor"),
    _pkg("certbot", "Certbot (Let's Encrypt)", "Free SSL/TLS certificates from Let's Encrypt",
         "certbot", ServiceType.OTHER, "certbot python3-certbot-nginx", binary_only=True),
    _pkg("git", "Git", "Git Version control system", "git", ServiceType.OTHER, "git", binary_only=True),
    _pkg("nodejs", "Node.js", "JavaScript runtime with npm", "node", ServiceType.OTHER, "nodejs npm", binary_only=True),
    _pkg("firewall", "Firewall (UFW)", "Configure firewall with common rules", "ufw", ServiceType.OTHER, "ufw",
         binary_only=True),
)


def get_package(pid: str) -> SetupPackage:
    for pkg in SETUP_PACKAGES:
        if pkg.id == pid:
            return pkg
    raise KeyError(pid)


def install_command(pkg: SetupPackage, scripts_dir: str | Path | None = None) -> str:
    """Install command for a package: ``<scripts_dir>/<id>.sh`` when present, else apt."""
    if scripts_dir:
        script = Path(scripts_dir) / (pkg.script or f"{pkg.id}.sh")
        if script.is_file():
            validate_script(script)
            return f"/bin/bash {script}"
    return pkg.install


@dataclass(frozen=True)
class SetupAction:
    title: str
    description: str
    command: str = ""


def setup_actions(pkg: SetupPackage, status: ServiceStatus, scripts_dir: str | Path | None = None) -> list[SetupAction]:
    """Actions offered for a package in its current state.

    An empty command opens the PHP version manager.
    """
    if pkg.id == "php":
        return [SetupAction("Manage PHP Versions", "Install or remove PHP versions and extensions")]
    svc = pkg.service
    install = install_command(pkg, scripts_dir)
    remove = f"{pkg.remove} || yum remove -y {svc}"
    if status in (ServiceStatus.NOT_INSTALLED, ServiceStatus.UNKNOWN):
        return [SetupAction("Install", f"Install {pkg.name}", install)]
    if pkg.binary_only:
        return [
            SetupAction("Reinstall / Update", "Reinstall or update to the latest version", install),
            SetupAction("Remove", "Uninstall the package", remove),
        ]
    if status == ServiceStatus.RUNNING:
        return [
            SetupAction("Restart Service", "Restart the service", f"systemctl restart {svc}"),
            SetupAction("Stop Service", "Stop the service", f"systemctl stop {svc}"),
            SetupAction("Reinstall / Update", "Reinstall or update to the latest version", install),
            SetupAction("Remove", "Uninstall and remove the service (will stop it first)",
                        f"systemctl stop {svc} && {remove}"),
        ]
    if status == ServiceStatus.FAILED:
        return [
            SetupAction("Restart Service", "Attempt to restart the failed service", f"systemctl restart {svc}"),
            SetupAction("Reinstall", "Reinstall to fix issues", install),
            SetupAction("Remove", "Uninstall and remove the service", f"systemctl stop {svc}; {remove}"),
        ]
    return [
        SetupAction("Reinstall / Update", "Reinstall or update to the latest version", install),
        SetupAction("Start Service", "Start the service", f"systemctl start {svc}"),
        SetupAction("Remove", "Uninstall and remove the service", remove),
    ]
