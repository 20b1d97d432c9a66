"""Kernel module tooling: binary module indexes, depmod.d configuration, symbol dependencies, static device nodes and modprobe helpers."""

__version__ = "0.1.0"