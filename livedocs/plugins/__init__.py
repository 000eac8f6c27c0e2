"""Built-in plugins resolvable by name from a site's ``plugins`` list."""
