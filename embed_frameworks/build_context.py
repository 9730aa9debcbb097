# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterable, List, Mapping, Tuple


class BuildEnvironmentError(Exception):
    pass


class BuildAction(str, Enum):
    build = "build"
    install = "install"
    clean = "clean"
    installapi = "installapi"
    installhdrs = "installhdrs"
    installsrc = "installsrc"
    other = "other"

    @staticmethod
    def from_string(value: str) -> BuildAction:
        try:
            return BuildAction(value)
        except ValueError:
            return BuildAction.other


@dataclass(frozen=True)
class BundlePair:
    input_path: str
    output_path: str


@dataclass(frozen=True)
class BuildContext:
    """
    Everything one embed run needs to know about the build it's part of.
    """

    configuration: str
    configurations_to_embed: FrozenSet[str]
    embed_all_configurations: bool
    valid_architectures: FrozenSet[str]
    action: BuildAction
    built_products_dir: Path
    bundle_pairs: Tuple[BundlePair, ...]

    def should_embed_configuration(self) -> bool:
        return (
            self.embed_all_configurations
            or self.configuration in self.configurations_to_embed
        )

    @staticmethod
    def from_environment(
        env: Mapping[str, str],
        configurations_to_embed: Iterable[str],
        embed_all_configurations: bool,
    ) -> BuildContext:
        return BuildContext(
            configuration=_required(env, "CONFIGURATION"),
            configurations_to_embed=frozenset(configurations_to_embed),
            embed_all_configurations=embed_all_configurations,
            valid_architectures=_valid_architectures(env),
            action=BuildAction.from_string(_required(env, "ACTION")),
            built_products_dir=Path(_required(env, "BUILT_PRODUCTS_DIR")),
            bundle_pairs=tuple(_bundle_pairs(env)),
        )


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if value is None:
        raise BuildEnvironmentError(
            f"Environment variable `{name}` is not set. Is the tool running from an Xcode build phase?"
        )
    return value


def _count(env: Mapping[str, str], name: str) -> int:
    value = env.get(name, "0")
    try:
        count = int(value)
    except ValueError:
        raise BuildEnvironmentError(
            f"Environment variable `{name}` should be a number, got `{value}`."
        )
    if count < 0:
        raise BuildEnvironmentError(
            f"Environment variable `{name}` should not be negative, got `{value}`."
        )
    return count


def _valid_architectures(env: Mapping[str, str]) -> FrozenSet[str]:
    value = env.get("VALID_ARCHS") or env.get("ARCHS")
    if value is None:
        raise BuildEnvironmentError(
            "Neither `VALID_ARCHS` nor `ARCHS` environment variable is set."
        )
    return frozenset(value.split())


def _numbered(env: Mapping[str, str], prefix: str, count: int) -> List[str]:
    return [_required(env, f"{prefix}_{i}") for i in range(count)]


def _bundle_pairs(env: Mapping[str, str]) -> List[BundlePair]:
    inputs = _numbered(
        env, "SCRIPT_INPUT_FILE", _count(env, "SCRIPT_INPUT_FILE_COUNT")
    )
    outputs = _numbered(
        env, "SCRIPT_OUTPUT_FILE", _count(env, "SCRIPT_OUTPUT_FILE_COUNT")
    )
    if inputs and not outputs:
        # Without declared outputs frameworks go to the product's Frameworks folder
        frameworks_dir = Path(_required(env, "TARGET_BUILD_DIR")) / _required(
            env, "FRAMEWORKS_FOLDER_PATH"
        )
        outputs = [str(frameworks_dir / Path(i).name) for i in inputs]
    if len(inputs) != len(outputs):
        raise BuildEnvironmentError(
            f"Expected the same number of input and output files, got {len(inputs)} inputs and {len(outputs)} outputs."
        )
    return [BundlePair(i, o) for i, o in zip(inputs, outputs)]
