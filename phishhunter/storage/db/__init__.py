"""Database mixins for the corpus store."""
