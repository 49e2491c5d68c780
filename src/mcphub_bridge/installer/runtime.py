"""
Runtime detection and provisioning.

Detects whether Node.js and uv are available on the host and, when they are
not, installs a private copy under the user's home directory. The outcome is
kept as a RuntimeRecord in the state store so it survives restarts.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional

from ..errors import ConfigurationError, FilesystemError
from ..platform_ops import PlatformOps
from ..state_store import StateStore
from .archive import fetch_and_extract

logger = logging.getLogger(__name__)

# (url, dest_dir, archive_format) -> None
Fetcher = Callable[[str, Path, str], Awaitable[None]]


class RuntimeKind(str, Enum):
    """Runtimes the bridge can provision."""
    NODE = "node"
    PYTHON_PACKAGER = "uv"


class RuntimeSource(str, Enum):
    """Where a runtime was found."""
    SYSTEM = "system"
    MANAGED = "managed"
    UNKNOWN = "unknown"


@dataclass
class RuntimeRecord:
    """Persisted fact about one runtime."""
    kind: RuntimeKind
    resolved_path: str = ""
    source: RuntimeSource = RuntimeSource.UNKNOWN

    def path_exists(self) -> bool:
        """True if resolved_path is set and still exists as a directory or symlink."""
        if not self.resolved_path:
            return False
        path = Path(self.resolved_path)
        return path.is_dir() or path.is_symlink()

    @property
    def is_stale(self) -> bool:
        """A managed record whose install directory has disappeared."""
        return self.source == RuntimeSource.MANAGED and not self.path_exists()

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "resolvedPath": self.resolved_path,
            "source": self.source.value,
            "stale": self.is_stale,
        }


class RuntimeRecordStore:
    """
    RuntimeRecords on top of the state store.

    Each kind uses two keys, "<kind>_path" and "use_system_<kind>"; an absent
    flag means the runtime has never been checked.
    """

    def __init__(self, state: StateStore):
        self._state = state

    @staticmethod
    def _keys(kind: RuntimeKind) -> tuple[str, str]:
        return f"{kind.value}_path", f"use_system_{kind.value}"

    def get(self, kind: RuntimeKind) -> RuntimeRecord:
        path_key, flag_key = self._keys(kind)
        path = self._state.get(path_key)
        flag = self._state.get(flag_key)

        if path is not None and not isinstance(path, str):
            raise ConfigurationError(f"Stored '{path_key}' must be a string, got {type(path).__name__}")
        if flag is not None and not isinstance(flag, bool):
            raise ConfigurationError(f"Stored '{flag_key}' must be a boolean, got {type(flag).__name__}")

        if flag is None:
            source = RuntimeSource.UNKNOWN
        elif flag:
            source = RuntimeSource.SYSTEM
        else:
            source = RuntimeSource.MANAGED

        record = RuntimeRecord(kind=kind, resolved_path=path or "", source=source)
        if record.is_stale:
            logger.warning(f"Managed {kind.value} at {record.resolved_path} no longer exists")
        return record

    def set(self, record: RuntimeRecord) -> None:
        if record.source == RuntimeSource.UNKNOWN:
            raise ValueError("Cannot persist a runtime record with unknown source")
        path_key, flag_key = self._keys(record.kind)
        self._state.set_many({
            path_key: record.resolved_path,
            flag_key: record.source == RuntimeSource.SYSTEM,
        })
        logger.info(f"Recorded {record.kind.value}: source={record.source.value}, path={record.resolved_path!r}")


@dataclass(frozen=True)
class RuntimeDescriptor:
    """
    Everything that differs between the runtimes we provision.

    Templates are formatted with version, target, dir_name and ext; the
    resulting paths are relative to the runtime root (e.g. ~/.node).
    """
    kind: RuntimeKind
    binary: str                      # executable probed on PATH
    runner: str                      # command catalog entries use, e.g. "npx"
    version: str
    install_name: str                # runtime root directory name
    targets: Mapping[tuple[str, str], str]  # (os, arch) -> download target
    url_template: str
    dir_template: str
    extract_template: str            # where the archive is unpacked
    posix_bin_template: str
    windows_bin_template: str
    # Auxiliary executables re-linked after extraction: (name, script)
    aux_scripts: tuple[tuple[str, str], ...] = ()
    posix_aux_template: str = ""
    windows_aux_template: str = ""

    def target(self, ops: PlatformOps) -> str:
        target = self.targets.get((ops.name, ops.arch))
        if target is None:
            raise ConfigurationError(
                f"No {self.kind.value} build for {ops.name}/{ops.arch}"
            )
        return target

    def _format(self, template: str, ops: PlatformOps) -> str:
        target = self.target(ops)
        dir_name = self.dir_template.format(version=self.version, target=target)
        return template.format(
            version=self.version,
            target=target,
            dir_name=dir_name,
            ext=ops.archive_format,
        )

    def dir_name(self, ops: PlatformOps) -> str:
        return self._format(self.dir_template, ops)

    def download_url(self, ops: PlatformOps) -> str:
        return self._format(self.url_template, ops)

    def extract_dir(self, ops: PlatformOps) -> Path:
        return ops.runtime_root(self.install_name) / self._format(self.extract_template, ops)

    def bin_dir(self, ops: PlatformOps) -> Path:
        template = self.windows_bin_template if ops.is_windows else self.posix_bin_template
        return ops.runtime_root(self.install_name) / self._format(template, ops)

    def aux_dir(self, ops: PlatformOps) -> Path:
        template = self.windows_aux_template if ops.is_windows else self.posix_aux_template
        return ops.runtime_root(self.install_name) / self._format(template, ops)


NODE = RuntimeDescriptor(
    kind=RuntimeKind.NODE,
    binary="node",
    runner="npx",
    version="v22.11.0",
    install_name="node",
    targets={
        ("darwin", "arm64"): "darwin-arm64",
        ("darwin", "x64"): "darwin-x64",
        ("linux", "arm64"): "linux-arm64",
        ("linux", "x64"): "linux-x64",
        ("windows", "x64"): "win-x64",
        ("windows", "x86"): "win-x86",
        ("windows", "arm64"): "win-x86",
    },
    url_template="https://nodejs.org/dist/{version}/node-{version}-{target}.{ext}",
    dir_template="node-{version}-{target}",
    extract_template="",
    posix_bin_template="{dir_name}/bin",
    windows_bin_template="{dir_name}",
    aux_scripts=(("npm", "npm-cli.js"), ("npx", "npx-cli.js")),
    posix_aux_template="{dir_name}/lib/node_modules/npm/bin",
    windows_aux_template="{dir_name}/node_modules/npm/bin",
)

UV = RuntimeDescriptor(
    kind=RuntimeKind.PYTHON_PACKAGER,
    binary="uv",
    runner="uvx",
    version="0.5.5",
    install_name="uv",
    targets={
        ("darwin", "arm64"): "aarch64-apple-darwin",
        ("darwin", "x64"): "x86_64-apple-darwin",
        ("linux", "arm64"): "aarch64-unknown-linux-gnu",
        ("linux", "x64"): "x86_64-unknown-linux-gnu",
        ("windows", "x64"): "x86_64-pc-windows-msvc",
        ("windows", "x86"): "i686-pc-windows-msvc",
        ("windows", "arm64"): "i686-pc-windows-msvc",
    },
    url_template="https://github.com/astral-sh/uv/releases/download/{version}/uv-{target}.{ext}",
    dir_template="uv-{version}-{target}",
    extract_template="{dir_name}",
    posix_bin_template="{dir_name}/uv-{target}",
    windows_bin_template="{dir_name}",
)

DESCRIPTORS: dict[RuntimeKind, RuntimeDescriptor] = {
    RuntimeKind.NODE: NODE,
    RuntimeKind.PYTHON_PACKAGER: UV,
}


def parse_probe_output(output: str, binary: str) -> str:
    """Pick the discovered executable path out of a probe's output, or ""."""
    found = ""
    for line in output.splitlines():
        line = line.strip()
        # Interactive shells may print banners; keep the last path-like hit
        if binary in line and ("/" in line or "\\" in line):
            found = line
    return found


class RuntimeProvisioner:
    """Detects and installs one runtime kind."""

    def __init__(
        self,
        descriptor: RuntimeDescriptor,
        ops: PlatformOps,
        records: RuntimeRecordStore,
        fetcher: Optional[Fetcher] = None,
    ):
        self.descriptor = descriptor
        self._ops = ops
        self._records = records
        self._fetcher = fetcher or fetch_and_extract

    @property
    def kind(self) -> RuntimeKind:
        return self.descriptor.kind

    def get_record(self) -> RuntimeRecord:
        return self._records.get(self.kind)

    async def detect(self, strict: bool = False) -> bool:
        """
        Check whether the runtime is usable.

        A recorded path that still exists short-circuits without probing.
        Otherwise the shell is probed and the result recorded as a system
        runtime, found or not.

        Args:
            strict: Return the probe's real outcome. By default detect()
                reports True once the probe has run, even if nothing was
                found, and callers treat the runtime as system-resolvable.
        """
        record = self._records.get(self.kind)
        if record.path_exists():
            logger.debug(f"{self.kind.value} already recorded at {record.resolved_path}")
            return True

        logger.debug(f"Running check {self.descriptor.binary} command")
        output = await self._ops.probe(self.descriptor.binary)
        found_path = parse_probe_output(output, self.descriptor.binary)
        if found_path:
            logger.info(f"Found system {self.descriptor.binary} at {found_path}")
        else:
            logger.info(f"No system {self.descriptor.binary} found")

        self._records.set(RuntimeRecord(
            kind=self.kind,
            resolved_path=found_path,
            source=RuntimeSource.SYSTEM,
        ))

        if strict:
            return bool(found_path)
        return True

    async def install(self) -> RuntimeRecord:
        """
        Download and install the pinned version of the runtime.

        The record is only written once every step has succeeded.
        """
        d = self.descriptor
        url = d.download_url(self._ops)
        extract_dir = d.extract_dir(self._ops)
        bin_dir = d.bin_dir(self._ops)
        logger.info(f"Installing {d.kind.value} {d.version} from {url}")

        try:
            extract_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create {extract_dir}: {e}") from e

        await self._fetcher(url, extract_dir, self._ops.archive_format)

        if d.aux_scripts:
            if self._ops.is_windows:
                self._write_windows_shims(bin_dir)
            else:
                self._link_aux_executables(bin_dir)

        await self._ops.add_to_path(bin_dir)

        record = RuntimeRecord(
            kind=self.kind,
            resolved_path=str(bin_dir),
            source=RuntimeSource.MANAGED,
        )
        self._records.set(record)
        logger.info(f"Installed {d.kind.value} into {bin_dir}")
        return record

    def _link_aux_executables(self, bin_dir: Path) -> None:
        """Point bin/npm and bin/npx at the bundled CLI scripts."""
        aux_dir = self.descriptor.aux_dir(self._ops)
        try:
            for name, script in self.descriptor.aux_scripts:
                link = bin_dir / name
                if link.is_symlink() or link.exists():
                    link.unlink()
                os.symlink(aux_dir / script, link)
                logger.debug(f"Linked {link} -> {aux_dir / script}")
        except OSError as e:
            raise FilesystemError(f"Failed to link {self.kind.value} executables: {e}") from e

    def _write_windows_shims(self, bin_dir: Path) -> None:
        """Write npm.cmd / npx.cmd launchers next to node.exe."""
        relative = self.descriptor.aux_dir(self._ops).relative_to(bin_dir)
        script_dir = str(relative).replace("/", "\\")
        try:
            for name, script in self.descriptor.aux_scripts:
                content = (
                    "@ECHO off\r\n"
                    f"\"%~dp0node.exe\" \"%~dp0{script_dir}\\{script}\" %*\r\n"
                )
                (bin_dir / f"{name}.cmd").write_text(content, encoding="utf-8", newline="")
        except OSError as e:
            raise FilesystemError(f"Failed to write {self.kind.value} launchers: {e}") from e

    def to_dict(self) -> dict:
        record = self.get_record()
        return {
            **record.to_dict(),
            "binary": self.descriptor.binary,
            "runnerCmd": self.descriptor.runner,
            "version": self.descriptor.version,
        }


def build_provisioners(
    ops: PlatformOps,
    records: RuntimeRecordStore,
    fetcher: Optional[Fetcher] = None,
) -> dict[RuntimeKind, RuntimeProvisioner]:
    """One provisioner per runtime kind."""
    return {
        kind: RuntimeProvisioner(descriptor, ops, records, fetcher)
        for kind, descriptor in DESCRIPTORS.items()
    }
