from __future__ import annotations

import os

from ..runner import CommandRunner

CURRENT = "current"
NVM_INSTALL = "curl -o- https://raw.githubusercontent.com/nvm-sh/nvm/v0.39.0/install.sh | bash"
NODE_VERSIONS = (
    ("16", "Node.js 16 (LTS)", "Maintenance LTS - Legacy support"),
    ("18", "Node.js 18 (LTS)", "Active LTS - Recommended for most projects"),
    ("20", "Node.js 20 (LTS)", "Active LTS - Latest features with stability"),
    ("21", "Node.js 21", "Current - Latest features"),
    ("22", "Node.js 22 (LTS)", "Active LTS - Newest LTS version"),
)


def npm_command(npm: str, version: str, nvm: bool) -> tuple[str, str]:
    """Wrap ``npm`` so it runs under the chosen Node.js version."""
    if version == CURRENT:
        return npm, f"Running {npm} (current Node.js)"
    if nvm:
        return f"source $HOME/.nvm/nvm.sh && nvm use {version} && {npm}", f"Running {npm} with Node.js {version}"
    warning = (f"echo 'Node.js {version} selected but nvm is not installed.' && "
               f"echo 'Install nvm first: {NVM_INSTALL}' && echo 'Running with current version instead...'")
    return f"{warning} && {npm}", f"Running {npm} (nvm not installed, using current)"


class NodeManager:
    def __init__(self, runner: CommandRunner | None = None, nvm_dir: str = "~/.nvm"):
        self.runner = runner or CommandRunner()
        self.nvm_dir = nvm_dir

    def current_version(self) -> str:
        return self.runner.output(["node", "--version"]) or "Not installed"

    def nvm_installed(self) -> bool:
        return os.path.isdir(os.path.expanduser(self.nvm_dir))
