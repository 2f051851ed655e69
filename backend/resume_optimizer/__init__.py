"""Resume optimization backend: AI rewrite, change summaries and diffs per job."""
