"""codescan: package a project, run a remote scan, map findings to source."""

__version__ = "0.1.0"
