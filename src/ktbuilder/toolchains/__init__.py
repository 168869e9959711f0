"""Compiler toolchains the executor can drive."""

from .base import StagedSource, Toolchain, ToolchainOutput, ToolchainRequest
from .inprocess import InProcessToolchain
from .kotlin_jvm import KotlinJvmToolchain

__all__ = [
    "InProcessToolchain",
    "KotlinJvmToolchain",
    "StagedSource",
    "Toolchain",
    "ToolchainOutput",
    "ToolchainRequest",
]
