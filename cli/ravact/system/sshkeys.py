from __future__ import annotations

import logging
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ..errors import CommandError, NotInstalledError, ValidationError
from ..runner import CommandRunner
from .files import list_dir, read_lines, read_text, remove, write_lines, write_text

log = logging.getLogger(__name__)

KEY_TYPES = {
    "ssh-rsa": "rsa",
    "ssh-ed25519": "ed25519",
    "ecdsa-sha2-nistp256": "ecdsa",
    "ecdsa-sha2-nistp384": "ecdsa",
    "ecdsa-sha2-nistp521": "ecdsa",
}
GENERATE_TYPES = ("ed25519", "rsa", "ecdsa")
RSA_BITS = 4096
_IDENT_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class SSHKey:
    type: str
    identifier: str
    public_path: str
    private_path: str
    fingerprint: str = ""
    is_login: bool = False
    has_private: bool = False

    @property
    def name(self) -> str:
        return Path(self.private_path).name

    @property
    def label(self) -> str:
        return f"{self.identifier or self.name} ({self.type.upper()})"


def parse_public_key(text: str) -> tuple[str, str] | None:
    """Return (type, comment) for an OpenSSH public key line."""
    parts = text.strip().split()
    if len(parts) < 2 or parts[0] not in KEY_TYPES:
        return None
    return KEY_TYPES[parts[0]], " ".join(parts[2:])


class SSHKeyManager:
    """Keys under ``<home>/.ssh``; login keys are the ones in authorized_keys."""

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    def fingerprint(self, public_key: str) -> str:
        res = self.runner.run(["ssh-keygen", "-lf", "-"], input=public_key)
        parts = (res.stdout or "").split()
        if res.returncode != 0 or len(parts) < 2:
            return ""
        return parts[1]

    def _authorized(self, home: str) -> set[str]:
        path = Path(home) / ".ssh" / "authorized_keys"
        if not path.exists():
            return set()
        prints = set()
        for line in read_lines(path):
            line = line.strip()
            if line and not line.startswith("#"):
                fp = self.fingerprint(line)
                if fp:
                    prints.add(fp)
        return prints

    def list_keys(self, home: str) -> list[SSHKey]:
        ssh_dir = Path(home) / ".ssh"
        if not ssh_dir.is_dir():
            return []
        authorized = self._authorized(home)
        keys: list[SSHKey] = []
        for path in list_dir(ssh_dir, "*.pub"):
            text = read_text(path)
            parsed = parse_public_key(text)
            if parsed is None:
                log.debug("skipping %s: not an ssh public key", path)
                continue
            private = path.with_suffix("")
            key = SSHKey(type=parsed[0], identifier=parsed[1], public_path=str(path), private_path=str(private),
                         fingerprint=self.fingerprint(text), has_private=private.exists())
            key.is_login = bool(key.fingerprint) and key.fingerprint in authorized
            keys.append(key)
        return keys

    def public_key(self, key: SSHKey) -> str:
        return read_text(Path(key.public_path)).strip()

    def generate(self, user: str, home: str, key_type: str, identifier: str, comment: str = "",
                 passphrase: str = "") -> str:
        if key_type not in GENERATE_TYPES:
            raise ValidationError("type", f"must be one of: {', '.join(GENERATE_TYPES)}")
        identifier = _IDENT_RE.sub("_", identifier.strip()).strip("_")
        if not identifier:
            raise ValidationError("identifier", "cannot be empty")
        ssh_dir = Path(home) / ".ssh"
        path = ssh_dir / f"id_{key_type}_{identifier}"
        if path.exists():
            raise ValidationError("identifier", f"key with name {path.name} already exists")
        self.runner.check(["install", "-d", "-m", "700", "-o", user, "-g", user, str(ssh_dir)],
                          message="failed to create .ssh directory")
        args = ["ssh-keygen", "-q", "-t", key_type, "-f", str(path), "-C", comment.strip() or identifier,
                "-N", passphrase]
        if key_type == "rsa":
            args += ["-b", str(RSA_BITS)]
        self.runner.check(args, message="failed to generate SSH key")
        self.runner.check(["chown", f"{user}:{user}", str(path), f"{path}.pub"], message="failed to set key owner")
        log.info("generated %s key %s for %s", key_type, path, user)
        return str(path)

    def authorize(self, user: str, home: str, key: SSHKey) -> None:
        path = Path(home) / ".ssh" / "authorized_keys"
        lines = read_lines(path) if path.exists() else []
        write_text(path, "\n".join([*lines, self.public_key(key)]) + "\n", mode=0o600)
        self.runner.check(["chown", f"{user}:{user}", str(path)], message="failed to set authorized_keys owner")
        log.info("authorized %s for %s", key.name, user)

    def unauthorize(self, home: str, key: SSHKey) -> None:
        path = Path(home) / ".ssh" / "authorized_keys"
        if not path.exists():
            return
        kept = [line for line in read_lines(path)
                if not line.strip() or line.strip().startswith("#") or self.fingerprint(line) != key.fingerprint]
        write_lines(path, kept)
        log.info("removed %s from authorized_keys in %s", key.name, home)

    def delete(self, home: str, key: SSHKey) -> None:
        if key.is_login:
            self.unauthorize(home, key)
        remove(Path(key.private_path))
        remove(Path(key.public_path))
        log.info("deleted ssh key %s", key.private_path)

    def export_pem(self, key: SSHKey) -> str:
        """Private key in PEM encoding, converted on a scratch copy."""
        if not key.has_private:
            raise NotInstalledError(f"private key not found: {key.private_path}")
        with tempfile.TemporaryDirectory(prefix="ravact-key-") as scratch:
            copy = Path(scratch) / key.name
            try:
                shutil.copyfile(key.private_path, copy)
            except OSError as exc:
                raise CommandError(f"cannot read {key.private_path}: {exc.strerror or exc}") from exc
            copy.chmod(0o600)
            self.runner.check(["ssh-keygen", "-p", "-m", "PEM", "-P", "", "-N", "", "-f", str(copy)],
                              message="cannot convert key (is it passphrase protected?)")
            return read_text(copy)

    def export_ppk(self, key: SSHKey) -> str:
        if not key.has_private:
            raise NotInstalledError(f"private key not found: {key.private_path}")
        if not self.runner.which("puttygen"):
            raise NotInstalledError("puttygen is not installed (apt install putty-tools)")
        res = self.runner.run(["puttygen", key.private_path, "-O", "private", "-o", "/dev/stdout"])
        if res.returncode != 0 or not (res.stdout or "").strip():
            raise CommandError("failed to convert key to PPK format (the key may be passphrase protected)",
                               output=res.stderr or "", exit_code=res.returncode)
        return res.stdout
