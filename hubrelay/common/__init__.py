"""Shared helpers used across hubrelay subpackages."""
