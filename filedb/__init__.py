"""
Versioned blob storage on top of Django's database layer.

Files are stored under a non-unique key plus a caller-supplied timestamp; the
(key, timestamp) pair is the primary key of the underlying table. Use
``filedb.store.FileStore`` for the Python API.
"""
