"""Per-provider request, response and stream-chunk encodings."""
