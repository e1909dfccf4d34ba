"""Data input/output helpers (CSV codec, session files, and file paths).

Modules here keep disk-level and text-format concerns isolated from the
session controller:
- :mod:`csv_codec` encodes samples to CSV and decodes tolerant CSV input.
- :mod:`csv_writer` writes encoded sessions to disk.
- :mod:`log_loader` loads CSV files or live samples into tables for review.
- :mod:`file_paths` centralises export naming and directory layout.
"""
