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
import platform
import shutil
import stat
from pathlib import Path

_LOGGER: logging.Logger = logging.getLogger(__name__)


def make_path_user_writable(path: Path) -> None:
    # On Linux `os.chmod()` can't operate on the symlink itself
    # (AT_SYMLINK_NOFOLLOW is not implemented), so the link target is changed.
    # Darwin supports permission setting on symlinks.
    follow_symlinks = platform.system() != "Darwin"
    st = os.stat(path, follow_symlinks=False)
    if stat.S_ISLNK(st.st_mode) and follow_symlinks:
        return
    if st.st_mode & stat.S_IWUSR:
        return

    try:
        os.chmod(path, st.st_mode | stat.S_IWUSR, follow_symlinks=follow_symlinks)
    except FileNotFoundError:
        if path.is_symlink() and not path.resolve().exists():
            _LOGGER.debug(f"Skipping dangling symlink `{path}`")
            return
        raise


def make_tree_user_writable(root: Path) -> None:
    make_path_user_writable(root)
    if root.is_symlink() or not root.is_dir():
        return
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            make_path_user_writable(Path(dirpath) / name)


def remove_path(path: Path) -> None:
    """
    Deletes a file, symlink or directory tree, including read-only content
    which is common for frameworks copied out of caches.
    """
    if path.is_dir() and not path.is_symlink():
        make_tree_user_writable(path)
        shutil.rmtree(path)
    else:
        path.unlink()
