from .codec import (
    DependencyManifestCodec,
    decode_manifest,
    encode_manifest,
    manifest_to_json,
    read_manifest,
    write_manifest,
)
from .model import (
    DEPENDENCY_KINDS,
    MANIFEST_SCHEMA_VERSION,
    DependencyEntry,
    DependencyKind,
    DependencyManifest,
)

__all__ = [
    "DEPENDENCY_KINDS",
    "MANIFEST_SCHEMA_VERSION",
    "DependencyEntry",
    "DependencyKind",
    "DependencyManifest",
    "DependencyManifestCodec",
    "decode_manifest",
    "encode_manifest",
    "manifest_to_json",
    "read_manifest",
    "write_manifest",
]
