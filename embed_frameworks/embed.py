# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

"""
Copies prebuilt frameworks into the product being built, keeping only the
architectures the product is built for.

For every input/output pair the framework, its `.dSYM` and (for `install`
builds) its `.bcsymbolmap` files are copied:

    Carthage/Build/iOS/Foo.framework      -> $OUTPUT/Foo.framework
    Carthage/Build/iOS/Foo.framework.dSYM -> $OUTPUT/../Foo.framework.dSYM
    Carthage/Build/iOS/<UUID>.bcsymbolmap -> $BUILT_PRODUCTS_DIR/<UUID>.bcsymbolmap
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .build_context import BuildAction, BuildContext, BundlePair
from .embed_errors import EmbedError
from .framework_package import DSYM_EXTENSION, FrameworkPackage, IArchitectureTool
from .writable import make_tree_user_writable, remove_path

_LOGGER: logging.Logger = logging.getLogger(__name__)

FRAMEWORK_EXTENSION = ".framework"


@dataclass
class EmbeddedFramework:
    framework: Path
    dsym: Path
    bcsymbolmaps: List[Path]


def embed_frameworks(
    context: BuildContext, architecture_tool: IArchitectureTool
) -> List[EmbeddedFramework]:
    if not context.should_embed_configuration():
        _LOGGER.warning(
            f"Not embedding frameworks because the following configuration is being built: {context.configuration}"
        )
    return [
        embed_framework(pair, context, architecture_tool)
        for pair in context.bundle_pairs
    ]


def embed_framework(
    pair: BundlePair, context: BuildContext, architecture_tool: IArchitectureTool
) -> EmbeddedFramework:
    input_path = Path(pair.input_path)
    output_path = Path(pair.output_path)
    _validate(pair, input_path, output_path)

    input_package = FrameworkPackage(input_path, architecture_tool)
    if not input_package.architectures() & context.valid_architectures:
        _LOGGER.warning(
            f"{input_path.name} does not support the current architectures: {' '.join(sorted(context.valid_architectures))}"
        )

    _LOGGER.info(f"Embedding `{input_path}` into `{output_path}`.")
    _copy_and_strip(input_path, output_path, context, architecture_tool)

    input_dsym_path = Path(str(input_path) + DSYM_EXTENSION)
    output_dsym_path = output_path.parent / input_dsym_path.name
    _copy_and_strip(input_dsym_path, output_dsym_path, context, architecture_tool)

    bcsymbolmaps = []
    if context.action == BuildAction.install:
        bcsymbolmaps = _copy_bcsymbolmaps(input_package, context.built_products_dir)

    return EmbeddedFramework(
        framework=output_path, dsym=output_dsym_path, bcsymbolmaps=bcsymbolmaps
    )


def _validate(pair: BundlePair, input_path: Path, output_path: Path) -> None:
    if input_path.suffix != FRAMEWORK_EXTENSION:
        raise EmbedError.invalid_extension(pair.input_path)
    if output_path.suffix != FRAMEWORK_EXTENSION:
        raise EmbedError.invalid_extension(pair.output_path)
    if not input_path.exists():
        raise EmbedError.not_found(pair.input_path)


def _copy_and_strip(
    source: Path,
    destination: Path,
    context: BuildContext,
    architecture_tool: IArchitectureTool,
) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    if destination.exists() or destination.is_symlink():
        _LOGGER.debug(f"Removing previously embedded `{destination}`.")
        remove_path(destination)
    _copy(source, destination)
    make_tree_user_writable(destination)
    FrameworkPackage(destination, architecture_tool).strip(
        context.valid_architectures
    )


def _copy(source: Path, destination: Path) -> None:
    if source.is_dir():
        shutil.copytree(source, destination, symlinks=True)
    else:
        shutil.copy2(source, destination)


def _copy_bcsymbolmaps(
    input_package: FrameworkPackage, built_products_dir: Path
) -> List[Path]:
    copied = []
    for bcsymbolmap in input_package.bcsymbolmaps():
        # Symbol maps are collected flat, nested directories are not preserved.
        destination = built_products_dir / bcsymbolmap.name
        destination.parent.mkdir(parents=True, exist_ok=True)
        _LOGGER.debug(f"Copying `{bcsymbolmap}` to `{destination}`.")
        shutil.copy2(bcsymbolmap, destination)
        copied.append(destination)
    return copied
