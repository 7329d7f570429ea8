"""Database infrastructure: models, repositories, sessions."""
