"""Database access for templated query execution."""
