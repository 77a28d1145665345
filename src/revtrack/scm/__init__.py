# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from revtrack.scm.base import (
    AdapterError,
    AdapterUnavailable,
    AnnotatedLine,
    Entry,
    EntryNotFound,
    Revision,
    RevisionPath,
    ScmAdapter,
    ScmError,
)
from revtrack.scm.registry import AdapterRegistry, UnknownKind, default_registry

__all__ = [
    "AdapterError",
    "AdapterRegistry",
    "AdapterUnavailable",
    "AnnotatedLine",
    "Entry",
    "EntryNotFound",
    "Revision",
    "RevisionPath",
    "ScmAdapter",
    "ScmError",
    "UnknownKind",
    "default_registry",
]
