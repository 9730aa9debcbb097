# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import subprocess
import tempfile
from abc import ABCMeta, abstractmethod
from pathlib import Path
from typing import AbstractSet, Callable, Iterable, List, Optional, Set, Union

from .embed_errors import InspectionError, StripError
from .info_plist import bundle_executable_name
from .writable import make_path_user_writable
from .xcrun import xcrun_path

_LOGGER: logging.Logger = logging.getLogger(__name__)

DSYM_EXTENSION = ".dSYM"
BCSYMBOLMAP_EXTENSION = ".bcsymbolmap"


class IArchitectureTool(metaclass=ABCMeta):
    @abstractmethod
    def architectures(self, binary_path: Path) -> Set[str]:
        raise NotImplementedError

    @abstractmethod
    def remove_architectures(
        self, binary_path: Path, architectures: Iterable[str], output_path: Path
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def uuids(self, binary_path: Path) -> List[str]:
        raise NotImplementedError


class LipoArchitectureTool(IArchitectureTool):
    """
    Inspects and thins fat binaries using `lipo` and `dwarfdump` through `xcrun`.
    """

    _uuid_pattern: re.Pattern[str] = re.compile(
        r"UUID: (?P<uuid>[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}) \((?P<arch>[^)]+)\)"
    )

    def __init__(self, xcrun: str) -> None:
        self.xcrun = xcrun

    @classmethod
    def default(cls) -> IArchitectureTool:
        return cls(xcrun_path())

    def architectures(self, binary_path: Path) -> Set[str]:
        # Output is either
        #   Architectures in the fat file: <path> are: armv7 arm64
        # or
        #   Non-fat file: <path> is architecture: arm64
        output = self._run(
            [self.xcrun, "lipo", "-info", str(binary_path)],
            lambda reason: InspectionError(binary_path, reason),
        )
        architectures = set(output.strip().split(": ")[-1].split())
        if not architectures:
            raise InspectionError(
                binary_path, f"Unexpected `lipo -info` output: {output}"
            )
        return architectures

    def remove_architectures(
        self, binary_path: Path, architectures: Iterable[str], output_path: Path
    ) -> None:
        command = [self.xcrun, "lipo"]
        for architecture in sorted(architectures):
            command += ["-remove", architecture]
        command += [str(binary_path), "-output", str(output_path)]
        self._run(command, lambda reason: StripError(binary_path, reason))

    def uuids(self, binary_path: Path) -> List[str]:
        output = self._run(
            [self.xcrun, "dwarfdump", "--uuid", str(binary_path)],
            lambda reason: InspectionError(binary_path, reason),
        )
        return [
            match.group("uuid").upper()
            for match in re.finditer(self._uuid_pattern, output)
        ]

    @staticmethod
    def _run(
        command: List[str],
        make_error: Callable[[str], Union[InspectionError, StripError]],
    ) -> str:
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise make_error(f"Failed to run `{shlex.join(command)}`: {e}") from e
        if result.returncode != 0:
            raise make_error(
                f"Command `{shlex.join(command)}` failed with exit code {result.returncode}:\n{result.stderr}"
            )
        return result.stdout


class FrameworkPackage:
    """
    A framework or debug symbol bundle whose primary executable can be inspected
    and thinned to a subset of architectures.
    """

    path: Path
    tool: IArchitectureTool

    def __init__(self, path: Path, tool: IArchitectureTool) -> None:
        self.path = path
        self.tool = tool

    @property
    def name(self) -> str:
        # Foo.framework and Foo.framework.dSYM are both named Foo
        return self.path.name.split(".")[0]

    @property
    def is_dsym(self) -> bool:
        return self.path.name.endswith(DSYM_EXTENSION)

    def binary_path(self) -> Path:
        binary_path = (
            self._dsym_binary_path() if self.is_dsym else self._framework_binary_path()
        )
        if binary_path is None:
            raise InspectionError(
                self.path, f"No executable found inside bundle `{self.path.name}`"
            )
        return binary_path

    def _framework_binary_path(self) -> Optional[Path]:
        executable = bundle_executable_name(self.path) or self.name
        for candidate in [
            self.path / executable,
            self.path / "Versions" / "Current" / executable,
        ]:
            if candidate.is_file():
                # Versioned macOS frameworks link the binary at the root.
                return Path(os.path.realpath(candidate))
        return None

    def _dsym_binary_path(self) -> Optional[Path]:
        dwarf_dir = self.path / "Contents" / "Resources" / "DWARF"
        preferred = dwarf_dir / self.name
        if preferred.is_file():
            return preferred
        if not dwarf_dir.is_dir():
            return None
        dwarf_files = sorted(p for p in dwarf_dir.iterdir() if p.is_file())
        if len(dwarf_files) == 1:
            return dwarf_files[0]
        return None

    def architectures(self) -> Set[str]:
        return self.tool.architectures(self.binary_path())

    def strip(self, keep_architectures: AbstractSet[str]) -> None:
        binary_path = self.binary_path()
        present = self.tool.architectures(binary_path)
        if not present & keep_architectures:
            raise StripError(
                self.path,
                f"None of the architectures [{', '.join(sorted(present))}] are in [{', '.join(sorted(keep_architectures))}]",
            )
        to_remove = present - keep_architectures
        if not to_remove:
            _LOGGER.debug(f"`{self.path}` contains only the requested architectures.")
            return

        _LOGGER.info(
            f"Stripping architectures [{', '.join(sorted(to_remove))}] from `{self.path}`."
        )
        make_path_user_writable(binary_path)
        with tempfile.TemporaryDirectory(
            dir=binary_path.parent, prefix=".strip-"
        ) as tmp_dir:
            stripped_path = Path(tmp_dir) / binary_path.name
            self.tool.remove_architectures(binary_path, to_remove, stripped_path)
            try:
                shutil.copymode(binary_path, stripped_path)
                os.replace(stripped_path, binary_path)
            except OSError as e:
                raise StripError(self.path, str(e)) from e

    def bcsymbolmaps(self) -> List[Path]:
        """
        Bitcode symbol maps are named after the UUIDs of the binary slices and
        are distributed next to the framework bundle.
        """
        search_dir = self.path.parent
        result = []
        for uuid in self.tool.uuids(self.binary_path()):
            candidate = search_dir / f"{uuid}{BCSYMBOLMAP_EXTENSION}"
            if candidate.is_file():
                result.append(candidate)
        return result
