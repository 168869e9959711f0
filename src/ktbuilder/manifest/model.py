"""Dependency manifest typed model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

DependencyKind = Literal["explicit", "implicit", "unused", "incomplete"]

DEPENDENCY_KINDS: tuple[str, ...] = get_args(DependencyKind)
MANIFEST_SCHEMA_VERSION = 1


@dataclass(frozen=True, slots=True)
class DependencyEntry:
    path: str
    kind: DependencyKind


@dataclass(frozen=True, slots=True)
class DependencyManifest:
    rule_label: str
    entries: tuple[DependencyEntry, ...] = ()
    success: bool = True
    schema_version: int = MANIFEST_SCHEMA_VERSION

    def matches_label(self, target_label: str) -> bool:
        return bool(target_label) and self.rule_label.endswith(target_label)

    def paths_of_kind(self, kind: DependencyKind) -> tuple[str, ...]:
        return tuple(entry.path for entry in self.entries if entry.kind == kind)
