"""Filesystem and git helpers used outside the search core."""
