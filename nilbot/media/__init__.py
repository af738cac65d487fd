"""Image helpers (thumbnails)."""
