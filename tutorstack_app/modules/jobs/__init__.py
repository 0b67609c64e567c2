"""Background jobs: optimize parameters, rebuild caches, initialize card states."""
