"""
Blob 저장소 어댑터
"""

from adapters.storage.blob_store import LocalBlobStore

__all__ = ["LocalBlobStore"]
