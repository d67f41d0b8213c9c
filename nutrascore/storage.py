# nutrascore/storage.py
"""
Seller Avatar Storage (S3)

Version: 1.0.0
Features:
- Thread-safe singleton access
- Retry decorator with exponential backoff for uploads
- Object path convention: {seller_id}/{uuid}.{ext} inside the avatar bucket
- Results returned as {"public_url"/"error"} dicts, never raised to pages
"""

import boto3
from botocore.exceptions import BotoCoreError, ClientError
import logging
import os
import threading
import time
import uuid
from functools import wraps
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .config import config

logger = logging.getLogger(__name__)


# ==================== RETRY DECORATOR ====================

def with_retry(max_retries: int = 3, delay: float = 1.0, backoff: float = 2.0):
    """
    Decorator for automatic retry with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts
        delay: Initial delay between retries (seconds)
        backoff: Multiplier for delay after each retry
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            current_delay = delay

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except ClientError as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        logger.warning(f"{func.__name__} attempt {attempt + 1} failed, retrying in {current_delay}s...")
                        time.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logger.error(f"{func.__name__} failed after {max_retries} attempts: {e}")

            raise last_exception
        return wrapper
    return decorator


CONTENT_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
}


def detect_content_type(filename: str) -> str:
    """Detect MIME type from filename"""
    ext = os.path.splitext(filename)[1].lower()
    return CONTENT_TYPES.get(ext, 'application/octet-stream')


def build_photo_path(seller_id: str, filename: str) -> str:
    """Object key for a new seller photo: {seller_id}/{uuid}.{ext}"""
    ext = os.path.splitext(filename)[1].lstrip('.').lower() or 'bin'
    return f"{seller_id}/{uuid.uuid4()}.{ext}"


# ==================== STORAGE CLASS ====================

class SellerPhotoStorage:
    """
    Avatar storage for seller profiles.

    Usage:
        storage = get_photo_storage()
        result = storage.upload_seller_photo(content, "me.png", seller_id)
        if result['error'] is None:
            url = result['public_url']
        storage.delete_seller_photo(url)
    """

    def __init__(
        self,
        s3_client=None,
        bucket_name: str = None,
        public_base_url: str = None
    ):
        storage_config = config.get_storage_config()

        self.bucket_name = bucket_name or storage_config['bucket_name']
        self.public_base_url = (public_base_url or storage_config['public_base_url']).rstrip('/')

        if s3_client is None:
            s3_client = boto3.client(
                's3',
                region_name=storage_config['region'],
                aws_access_key_id=storage_config['access_key_id'],
                aws_secret_access_key=storage_config['secret_access_key']
            )
            logger.info(f"✅ Avatar storage client initialized: {self.bucket_name}")

        self.s3_client = s3_client

    # ==================== CORE OPERATIONS ====================

    @with_retry(max_retries=3)
    def _put_object(self, key: str, content: bytes, content_type: str):
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type,
            CacheControl='max-age=3600'
        )

    def upload_seller_photo(
        self,
        content: bytes,
        filename: str,
        seller_id: str
    ) -> Dict[str, Any]:
        """
        Upload a seller photo.

        Args:
            content: Image bytes
            filename: Original filename (extension is kept)
            seller_id: Owner of the photo, used as the path prefix

        Returns:
            Dict with 'public_url' (None on failure), 'key' and 'error'
        """
        if not content or not seller_id:
            return {'public_url': None, 'key': None, 'error': 'File and seller id are required.'}

        key = build_photo_path(seller_id, filename)

        try:
            self._put_object(key, content, detect_content_type(filename))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading seller photo {key}: {e}")
            return {'public_url': None, 'key': None, 'error': str(e)}

        logger.info(f"✅ Uploaded: {key} ({len(content)} bytes)")

        return {'public_url': self.get_public_url(key), 'key': key, 'error': None}

    def delete_seller_photo(self, public_url: str) -> Dict[str, Optional[str]]:
        """
        Delete a seller photo given its public URL.

        Returns:
            Dict with 'error' (None on success)
        """
        if not public_url:
            return {'error': 'Photo URL is required to delete.'}

        key = self.extract_path(public_url)
        if not key:
            logger.error(f"Invalid photo URL format, cannot extract path: {public_url}")
            return {'error': 'Invalid photo URL format.'}

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting seller photo {key}: {e}")
            return {'error': str(e)}

        logger.info(f"✅ Deleted: {key}")
        return {'error': None}

    def file_exists(self, key: str) -> bool:
        """Check if an object exists in the bucket"""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchKey', 'NotFound'):
                return False
            logger.error(f"Error checking file: {e}")
            return False

    # ==================== URL HELPERS ====================

    def get_public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{self.bucket_name}/{key}"

    def extract_path(self, public_url: str) -> Optional[str]:
        """Object key following the bucket segment of a public URL"""
        try:
            segments = urlparse(public_url).path.split('/')
        except ValueError:
            return None

        if self.bucket_name not in segments:
            return None

        index = segments.index(self.bucket_name)
        key = '/'.join(s for s in segments[index + 1:] if s)
        return key or None

    def validate_connection(self) -> bool:
        """Verify the bucket exists and is accessible"""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Avatar storage validation failed: {e}")
            return False


# ==================== SINGLETON ACCESS ====================

_photo_storage = None
_storage_lock = threading.Lock()


def get_photo_storage() -> SellerPhotoStorage:
    """Get SellerPhotoStorage singleton instance (thread-safe)"""
    global _photo_storage

    if _photo_storage is None:
        with _storage_lock:
            if _photo_storage is None:
                _photo_storage = SellerPhotoStorage()

    return _photo_storage


def reset_photo_storage():
    """Reset the storage singleton (for reconnection)"""
    global _photo_storage

    with _storage_lock:
        _photo_storage = None

    logger.info("🔄 Avatar storage reset")


# ==================== EXPORTS ====================

__all__ = [
    'SellerPhotoStorage',
    'get_photo_storage',
    'reset_photo_storage',
    'build_photo_path',
    'detect_content_type',
    'with_retry',
]
