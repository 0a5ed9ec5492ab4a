"""Explorer access, fetching and normalization helpers."""
