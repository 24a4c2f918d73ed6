"""Frontmatter stamping: fingerprint, filters, decision engine, event handling."""
