# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

import logging
import os
import sys
from typing import List, Optional

from tap import Tap

from .build_context import BuildContext, BuildEnvironmentError
from .embed import embed_frameworks
from .embed_errors import EmbedError
from .framework_package import LipoArchitectureTool


class Arguments(Tap):
    """
    Tool which copies prebuilt frameworks, their dSYMs and bitcode symbol maps into
    the product being built and strips architectures the product is not built for.
    Meant to run from an Xcode "Run Script" build phase; inputs and outputs are
    read from the build phase environment.
    """

    configuration: Optional[List[str]] = None
    all_configurations: bool = False
    verbose: bool = False

    def configure(self) -> None:
        """
        Configure the arguments.
        """
        self.add_argument(
            "--configuration",
            metavar="<name>",
            type=str,
            action="append",
            required=False,
            help="Build configuration for which frameworks should be embedded. Can be repeated.",
        )
        self.add_argument(
            "--all-configurations",
            action="store_true",
            required=False,
            help="Embed frameworks regardless of the build configuration.",
        )
        self.add_argument(
            "--verbose",
            action="store_true",
            required=False,
            help="Log every step of the embedding.",
        )


class _XcodeLogFormatter(logging.Formatter):
    # Xcode highlights lines starting with `warning:` and `error:`
    def format(self, record: logging.LogRecord) -> str:
        return f"{record.levelname.lower()}: {record.getMessage()}"


def decorate_error_message(message: str) -> str:
    return " ".join(["error:", message])


def _setup_logging(verbose: bool) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(_XcodeLogFormatter())
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO, handlers=[handler]
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = Arguments().parse_args(argv)
    _setup_logging(args.verbose)
    try:
        context = BuildContext.from_environment(
            os.environ,
            configurations_to_embed=args.configuration or [],
            embed_all_configurations=args.all_configurations,
        )
        embed_frameworks(context, LipoArchitectureTool.default())
    except (EmbedError, BuildEnvironmentError) as e:
        print(decorate_error_message(str(e)), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
