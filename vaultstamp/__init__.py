"""Vault frontmatter stamping service."""
