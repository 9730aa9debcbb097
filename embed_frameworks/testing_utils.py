# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

from pathlib import Path
from typing import Dict, Iterable, List, Set

from .embed_errors import InspectionError
from .framework_package import IArchitectureTool


def write_fake_binary(path: Path, slices: Dict[str, str]) -> None:
    """
    Fake binaries list one `<arch> <uuid>` line per slice.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{arch} {uuid}\n" for arch, uuid in slices.items()))


def read_fake_binary(path: Path) -> Dict[str, str]:
    slices = {}
    for line in path.read_text().splitlines():
        arch, uuid = line.split()
        slices[arch] = uuid
    return slices


def make_fake_framework(
    directory: Path, name: str, slices: Dict[str, str], with_dsym: bool = True
) -> Path:
    framework_path = directory / f"{name}.framework"
    write_fake_binary(framework_path / name, slices)
    (framework_path / "Headers").mkdir()
    (framework_path / "Headers" / f"{name}.h").write_text("// header\n")
    if with_dsym:
        write_fake_binary(
            directory / f"{name}.framework.dSYM" / "Contents/Resources/DWARF" / name,
            slices,
        )
    return framework_path


class FakeArchitectureTool(IArchitectureTool):
    def __init__(self) -> None:
        self.removed: List[Set[str]] = []

    def architectures(self, binary_path: Path) -> Set[str]:
        if not binary_path.is_file():
            raise InspectionError(binary_path, "not a binary")
        return set(read_fake_binary(binary_path).keys())

    def remove_architectures(
        self, binary_path: Path, architectures: Iterable[str], output_path: Path
    ) -> None:
        to_remove = set(architectures)
        self.removed.append(to_remove)
        slices = read_fake_binary(binary_path)
        write_fake_binary(
            output_path,
            {arch: uuid for arch, uuid in slices.items() if arch not in to_remove},
        )

    def uuids(self, binary_path: Path) -> List[str]:
        return list(read_fake_binary(binary_path).values())
