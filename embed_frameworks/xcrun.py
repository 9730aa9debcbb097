# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

import shutil

_DEFAULT_XCRUN_PATH = "/usr/bin/xcrun"


def xcrun_path() -> str:
    return shutil.which("xcrun") or _DEFAULT_XCRUN_PATH
