"""Dependency manifest encoder and validating decoder.

Manifests are canonical CBOR maps so that the same manifest value always
encodes to identical bytes:

    {"schema_version": 1, "rule_label": str, "success": bool,
     "entries": [{"path": str, "kind": str}, ...]}
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import cbor2

from ktbuilder.errors import MalformedManifestError, MissingArtifactError
from ktbuilder.manifest.model import (
    DEPENDENCY_KINDS,
    MANIFEST_SCHEMA_VERSION,
    DependencyEntry,
    DependencyManifest,
)


def encode_manifest(manifest: DependencyManifest) -> bytes:
    return cbor2.dumps(_payload(manifest), canonical=True)


def decode_manifest(data: bytes) -> DependencyManifest:
    if not data:
        raise MalformedManifestError("Dependency manifest is empty.")
    stream = io.BytesIO(data)
    try:
        payload = cbor2.CBORDecoder(stream).decode()
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise MalformedManifestError(
            "Dependency manifest is not valid CBOR.",
            hint="The manifest may be truncated or written by another tool.",
            context={"error": str(exc)},
        ) from exc
    if stream.tell() != len(data):
        raise MalformedManifestError(
            "Dependency manifest has trailing bytes after the CBOR payload.",
            context={"trailing_bytes": str(len(data) - stream.tell())},
        )

    if not isinstance(payload, dict):
        raise MalformedManifestError("Dependency manifest payload must be a map.")

    version = payload.get("schema_version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise MalformedManifestError("Invalid manifest `schema_version` value.")
    if version != MANIFEST_SCHEMA_VERSION:
        raise MalformedManifestError(
            "Unsupported dependency manifest schema version.",
            hint=f"This builder reads schema version {MANIFEST_SCHEMA_VERSION}.",
            context={"schema_version": str(version)},
        )

    rule_label = payload.get("rule_label")
    if not isinstance(rule_label, str) or not rule_label:
        raise MalformedManifestError("Invalid manifest `rule_label` value.")

    success = payload.get("success")
    if not isinstance(success, bool):
        raise MalformedManifestError("Invalid manifest `success` value.")

    entries_raw = payload.get("entries")
    if not isinstance(entries_raw, list):
        raise MalformedManifestError("Invalid manifest `entries` value.")

    return DependencyManifest(
        rule_label=rule_label,
        entries=tuple(_parse_entry(item) for item in entries_raw),
        success=success,
        schema_version=version,
    )


def read_manifest(path: str | Path) -> DependencyManifest:
    manifest_path = Path(path)
    try:
        data = manifest_path.read_bytes()
    except FileNotFoundError as exc:
        raise MissingArtifactError(
            "Dependency manifest does not exist.",
            path=str(manifest_path),
        ) from exc
    return decode_manifest(data)


def write_manifest(manifest: DependencyManifest, path: str | Path) -> Path:
    manifest_path = Path(path)
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    manifest_path.write_bytes(encode_manifest(manifest))
    return manifest_path


def manifest_to_json(manifest: DependencyManifest) -> str:
    return json.dumps(_payload(manifest), indent=2, sort_keys=True) + "\n"


def _payload(manifest: DependencyManifest) -> dict[str, Any]:
    return {
        "schema_version": manifest.schema_version,
        "rule_label": manifest.rule_label,
        "success": manifest.success,
        "entries": [{"path": entry.path, "kind": entry.kind} for entry in manifest.entries],
    }


def _parse_entry(item: Any) -> DependencyEntry:
    if not isinstance(item, dict):
        raise MalformedManifestError("Invalid dependency entry in manifest.")
    path = item.get("path")
    kind = item.get("kind")
    if not isinstance(path, str) or not path:
        raise MalformedManifestError("Invalid dependency entry `path` value.")
    if kind not in DEPENDENCY_KINDS:
        raise MalformedManifestError(
            "Unknown dependency entry kind.",
            context={"path": path, "kind": str(kind)},
        )
    return DependencyEntry(path=path, kind=kind)


class DependencyManifestCodec:
    """Object seam over the module-level codec, for injection into verifiers."""

    def encode(self, manifest: DependencyManifest) -> bytes:
        return encode_manifest(manifest)

    def decode(self, data: bytes) -> DependencyManifest:
        return decode_manifest(data)
