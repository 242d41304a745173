"""User interface components for Kestrel."""
