"""Disk-level input/output for Persyst recordings.

- :mod:`canonical_store` keeps sample times and comments in SQLite.
- :mod:`lay_extractor` reads comments back out of a layout file.
- :mod:`lay_writer` writes the layout header and rewritable sections.
- :mod:`file_paths` centralises per-stream file naming.
"""
