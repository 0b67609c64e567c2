"""Card content lookup (authoring lives outside the scheduling core)."""
