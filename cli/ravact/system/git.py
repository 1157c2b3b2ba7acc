from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass

from ..errors import CommandError, ValidationError
from ..runner import CommandRunner

log = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"
TEST_HOST = "git@github.com"
WEB_GROUP = "www-data"
OPERATIONS = {
    "git_pull": ("git pull", "Pulling latest changes"),
    "git_fetch": ("git fetch --all", "Fetching from all remotes"),
    "git_status": ("git status", "Git Status"),
}
# ssh-agent is per session, so every script loads the user's keys itself
_LOAD_KEYS = """eval $(ssh-agent -s) > /dev/null 2>&1
for key in ~/.ssh/id_* ; do
    if [ -f "$key" ] && [ "${key}" = "${key%.pub}" ]; then
        ssh-add "$key" 2>/dev/null || true
    fi
done"""
_KILL_AGENT = "ssh-agent -k > /dev/null 2>&1 || true"


@dataclass
class GitInfo:
    is_repo: bool = False
    branch: str = ""
    remote_name: str = ""
    remote_url: str = ""
    last_commit: str = ""
    commit_msg: str = ""
    has_changes: bool = False
    ahead: int = 0
    behind: int = 0


def validate_url(url: str, field: str = "url") -> str:
    url = url.strip()
    if not url:
        raise ValidationError(field, "URL cannot be empty")
    if "git@" not in url and "https://" not in url:
        raise ValidationError(field, "invalid URL format. Use SSH (git@...) or HTTPS (https://...)")
    return url


def as_user(user: str, script: str) -> str:
    return f"su - {shlex.quote(user)} -c {shlex.quote(script)}"


def operation_command(action: str, user: str, path: str) -> tuple[str, str]:
    """Shell command and description for pull, fetch or status run as ``user``."""
    if action not in OPERATIONS:
        raise ValueError(f"unknown git operation: {action}")
    git_cmd, description = OPERATIONS[action]
    script = f"cd {shlex.quote(path)}\n{_LOAD_KEYS}\n{git_cmd} 2>&1\nstatus=$?\n{_KILL_AGENT}\nexit $status\n"
    return as_user(user, script), f"{description} (as {user})"


def clone_command(user: str, path: str, url: str) -> str:
    """Clone into ``path`` as ``user``, then hand the tree to the web group."""
    target = shlex.quote(path)
    owner = shlex.quote(f"{user}:{user}")
    web_owner = shlex.quote(f"{user}:{WEB_GROUP}")
    inner = (f"{_LOAD_KEYS}\ncd {target}\ngit clone --progress {shlex.quote(url)} . 2>&1\nstatus=$?\n"
             f"{_KILL_AGENT}\nexit $status\n")
    return "\n".join([
        f"if [ ! -d {target} ]; then echo '✗ Directory does not exist: {path}'; exit 1; fi",
        f'if [ "$(stat -c %U:%G {target})" != {owner} ]; then',
        f"    chown {owner} {target} && chmod 755 {target}",
        "fi",
        "echo '[1/3] Cloning repository...'",
        as_user(user, inner) + " || exit $?",
        "echo '[2/3] Setting ownership...'",
        f"if getent group {WEB_GROUP} > /dev/null 2>&1; then chown -R {web_owner} {target}; "
        f"else chown -R {owner} {target}; fi",
        "echo '[3/3] Setting permissions...'",
        f"find {target} -type d -exec chmod 755 {{}} \\;",
        f"find {target} -type f -exec chmod 644 {{}} \\;",
        f"if [ -d {target}/storage ]; then chmod -R 775 {target}/storage {target}/bootstrap/cache 2>/dev/null; fi",
        f"if [ -d {target}/wp-content ]; then chmod -R 775 {target}/wp-content; fi",
        "echo '✓ Clone completed successfully!'",
    ])


class GitManager:
    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    def _git(self, path: str, *args: str) -> str:
        res = self.runner.run(["git", "-C", path, *args])
        if res.returncode != 0:
            return ""
        return (res.stdout or "").strip()

    def info(self, path: str) -> GitInfo:
        info = GitInfo()
        if self._git(path, "rev-parse", "--is-inside-work-tree") != "true":
            return info
        info.is_repo = True
        info.branch = self._git(path, "rev-parse", "--abbrev-ref", "HEAD")
        remotes = self._git(path, "remote").split()
        if remotes:
            info.remote_name = DEFAULT_REMOTE if DEFAULT_REMOTE in remotes else remotes[0]
            info.remote_url = self._git(path, "remote", "get-url", info.remote_name)
        info.last_commit = self._git(path, "rev-parse", "--short", "HEAD")
        msg = self._git(path, "log", "-1", "--pretty=%s")
        info.commit_msg = msg[:57] + "..." if len(msg) > 60 else msg
        info.has_changes = bool(self._git(path, "status", "--porcelain"))
        if info.remote_name and info.branch:
            counts = self._git(path, "rev-list", "--left-right", "--count",
                               f"{info.remote_name}/{info.branch}...HEAD").split()
            if len(counts) == 2 and all(c.isdigit() for c in counts):
                info.behind, info.ahead = int(counts[0]), int(counts[1])
        return info

    def set_remote(self, path: str, url: str) -> str:
        url = validate_url(url)
        current = self.info(path)
        if not current.is_repo:
            raise CommandError("not a git repository (clone or init first)")
        name = current.remote_name or DEFAULT_REMOTE
        if current.remote_url:
            self.runner.check(["git", "-C", path, "remote", "set-url", name, url], message="failed to change remote")
            log.info("git remote %s in %s set to %s", name, path, url)
            return f"Remote '{name}' URL updated to: {url}"
        self.runner.check(["git", "-C", path, "remote", "add", name, url], message="failed to add remote")
        log.info("git remote %s added in %s", name, path)
        return f"Remote '{name}' added with URL: {url}"

    def remove_remote(self, user: str, path: str) -> str:
        name = self.info(path).remote_name
        if not name:
            raise CommandError("no remote configured")
        script = f"cd {shlex.quote(path)} && git remote remove {shlex.quote(name)}"
        self.runner.check(["su", "-", user, "-c", script], message="failed to remove remote")
        return f"Remote '{name}' removed"

    def test_connection(self, user: str, key: str = "") -> str:
        """Authenticate against GitHub over SSH as ``user``.

        GitHub exits non-zero even on success, so the response text decides.
        """
        if key:
            script = (f"eval $(ssh-agent -s) > /dev/null 2>&1\nssh-add {shlex.quote(key)} 2>/dev/null\n"
                      f"ssh -o StrictHostKeyChecking=accept-new -o BatchMode=yes -i {shlex.quote(key)} "
                      f"-T {TEST_HOST} 2>&1\n{_KILL_AGENT}")
        else:
            script = (f"{_LOAD_KEYS}\nssh -o StrictHostKeyChecking=accept-new -o BatchMode=yes "
                      f"-T {TEST_HOST} 2>&1\n{_KILL_AGENT}")
        res = self.runner.run(["su", "-", user, "-c", script])
        output = ((res.stdout or "") + (res.stderr or "")).strip()
        label = key.rsplit("/", 1)[-1] if key else "auto-detect"
        if "successfully authenticated" in output or "Hi " in output:
            return f"SSH connection successful (user {user}, key {label}): {output}"
        if "Permission denied" in output or "publickey" in output:
            raise CommandError(f"SSH connection failed (user {user}, key {label}): {output}. "
                               "Check that the key exists and is added to GitHub/GitLab", output=output)
        if "Could not resolve" in output or "Network is unreachable" in output:
            raise CommandError(f"network error: {output}", output=output)
        if res.returncode != 0:
            raise CommandError(f"connection test failed (user {user}, key {label}): {output}",
                               output=output, exit_code=res.returncode)
        return f"Connection test completed (user {user}, key {label}): {output}"
