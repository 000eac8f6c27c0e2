"""Plugins loaded for every site unless switched off in ``plugins_context``."""
