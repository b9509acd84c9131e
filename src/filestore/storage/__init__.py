"""
Storage layer for the file store.

- Blob store (blobs.py): raw content, one file per ID
- Index store (index.py): durable JSON index of file records
"""

from filestore.storage.blobs import BlobStore
from filestore.storage.index import IndexStore, freeze_details

__all__ = ["BlobStore", "IndexStore", "freeze_details"]
