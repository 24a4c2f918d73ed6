"""Vault document store."""
