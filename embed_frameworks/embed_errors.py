# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

# pyre-strict

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union


class EmbedErrorKind(str, Enum):
    invalidExtension = "invalid-extension"
    notFound = "not-found"
    inspection = "inspection"
    strip = "strip"


class EmbedError(Exception):
    """
    Error raised while embedding a framework. `kind` tells which step failed and
    `path` is the offending file or bundle.
    """

    kind: EmbedErrorKind
    path: str
    reason: Optional[str]

    def __init__(
        self,
        kind: EmbedErrorKind,
        path: Union[str, Path],
        reason: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.path = str(path)
        self.reason = reason
        super().__init__(self.description)

    @property
    def description(self) -> str:
        if self.kind == EmbedErrorKind.invalidExtension:
            message = f"File doesn't have a .framework extension: {self.path}"
        elif self.kind == EmbedErrorKind.notFound:
            message = f"File not found at path: {self.path}"
        elif self.kind == EmbedErrorKind.inspection:
            message = f"Unable to read architectures of binary at path: {self.path}"
        elif self.kind == EmbedErrorKind.strip:
            message = f"Unable to strip architectures of binary at path: {self.path}"
        else:
            raise RuntimeError(f"Unexpected embed error kind `{self.kind}`")
        if self.reason:
            message += f"\n{self.reason}"
        return message

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, EmbedError)
            and self.kind == other.kind
            and self.path == other.path
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.path))

    @classmethod
    def invalid_extension(cls, path: Union[str, Path]) -> EmbedError:
        return cls(EmbedErrorKind.invalidExtension, path)

    @classmethod
    def not_found(cls, path: Union[str, Path]) -> EmbedError:
        return cls(EmbedErrorKind.notFound, path)


class InspectionError(EmbedError):
    def __init__(self, path: Union[str, Path], reason: Optional[str] = None) -> None:
        super().__init__(EmbedErrorKind.inspection, path, reason)


class StripError(EmbedError):
    def __init__(self, path: Union[str, Path], reason: Optional[str] = None) -> None:
        super().__init__(EmbedErrorKind.strip, path, reason)
