"""Data visualisation framework: pluggable sources and styles for tabular data."""
