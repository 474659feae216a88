"""Cross-cutting request plumbing (rate limiting, dependency wiring)."""
