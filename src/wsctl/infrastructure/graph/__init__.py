"""Dependency graph over workspaces and the packages they declare."""
