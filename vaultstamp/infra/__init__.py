"""Infrastructure helpers: logging, metrics, user notices."""
