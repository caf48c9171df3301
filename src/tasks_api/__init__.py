"""Tasks API: task CRUD and a Pokemon proxy behind one-time CSRF tokens."""

__version__ = "1.0.0"
