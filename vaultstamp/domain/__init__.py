"""Domain logic for the vault stamping service."""
