# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

import plistlib
from pathlib import Path
from typing import Any, Dict, IO, Optional
from xml.parsers.expat import ExpatError


def _is_fmt_binary(header: bytes) -> bool:
    return header[:8] == b"bplist00"


def detect_format_and_load(fp: IO[bytes]) -> Dict[str, Any]:
    header = fp.read(32)
    fp.seek(0)
    if _is_fmt_binary(header):
        fmt = plistlib.FMT_BINARY
    else:
        fmt = plistlib.FMT_XML
    return plistlib.load(fp, fmt=fmt)


def find_info_plist(bundle_path: Path) -> Optional[Path]:
    # iOS style bundles keep Info.plist at the root, versioned macOS
    # frameworks under Resources/
    for candidate in [
        bundle_path / "Info.plist",
        bundle_path / "Resources" / "Info.plist",
        bundle_path / "Versions" / "Current" / "Resources" / "Info.plist",
        bundle_path / "Contents" / "Info.plist",
    ]:
        if candidate.is_file():
            return candidate
    return None


def bundle_executable_name(bundle_path: Path) -> Optional[str]:
    info_plist_path = find_info_plist(bundle_path)
    if info_plist_path is None:
        return None
    with open(info_plist_path, mode="rb") as info_plist_file:
        try:
            root = detect_format_and_load(info_plist_file)
        except (plistlib.InvalidFileException, ExpatError):
            return None
    executable = root.get("CFBundleExecutable")
    return executable if isinstance(executable, str) and executable else None
