"""Spaced-repetition scheduling core (FSRS memory model plus learning steps)."""

module_metadata = {
    'name': 'FSRS Scheduling',
    'category': 'System',
    'url_prefix': '/api/fsrs',
    'enabled': True
}
