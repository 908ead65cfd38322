"""Command-line surface for specular-drift."""
