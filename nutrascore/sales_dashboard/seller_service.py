# nutrascore/sales_dashboard/seller_service.py
"""
Seller profile workflows

Multi-step writes that combine the relational store and avatar storage:
- create: insert profile -> upload photo -> attach photo URL
- update: upload new photo -> update profile -> delete previous photo
- delete: remove the profile row only (photo cleanup is a separate call)

Steps run sequentially and earlier steps are not rolled back. A photo
failure never loses the profile write; it is reported as ``photo_error``.
At most one edit per profile runs at a time within this process.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..storage import SellerPhotoStorage, detect_content_type, get_photo_storage
from .constants import ACCEPTED_IMAGE_TYPES, MAX_PHOTO_SIZE_BYTES
from .errors import EditInProgressError, PhotoValidationError
from .models import SellerProfile
from .mutations import DashboardMutations
from .queries import DashboardQueries

logger = logging.getLogger(__name__)


@dataclass
class PhotoUpload:
    content: bytes
    filename: str
    content_type: Optional[str] = None

    @classmethod
    def from_uploaded_file(cls, uploaded_file) -> Optional['PhotoUpload']:
        """Build from a Streamlit UploadedFile (None passes through)."""
        if uploaded_file is None:
            return None
        return cls(
            content=uploaded_file.getvalue(),
            filename=uploaded_file.name,
            content_type=uploaded_file.type,
        )

    @property
    def size(self) -> int:
        return len(self.content or b'')


@dataclass
class SellerResult:
    """Outcome of a seller workflow; ``photo_error`` marks a partial success."""
    profile: Optional[SellerProfile] = None
    error: Optional[str] = None
    photo_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_photo(photo: PhotoUpload):
    """Raise PhotoValidationError when the photo is empty, too large or not an image."""
    if not photo.content:
        raise PhotoValidationError("Photo file is empty.")

    if photo.size > MAX_PHOTO_SIZE_BYTES:
        limit_mb = MAX_PHOTO_SIZE_BYTES / (1024 * 1024)
        raise PhotoValidationError(f"Photo exceeds the {limit_mb:.0f}MB limit.")

    content_type = photo.content_type or detect_content_type(photo.filename)
    if content_type not in ACCEPTED_IMAGE_TYPES:
        raise PhotoValidationError(
            f"Unsupported photo type '{content_type}'. Use JPEG, PNG, GIF or WEBP."
        )


class SellerProfileService:
    """
    Seller create/update/delete with photo handling.

    Usage:
        service = SellerProfileService()
        result = service.update_seller(seller, {'name': 'Ana'}, photo, user_id, user_email)
        if result.error:
            st.error(result.error)
        elif result.photo_error:
            st.warning(result.photo_error)
    """

    # entries go away once no edit holds a reference to the lock
    _locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
    _locks_guard = threading.Lock()

    def __init__(
        self,
        queries: DashboardQueries = None,
        mutations: DashboardMutations = None,
        storage: SellerPhotoStorage = None
    ):
        self.queries = queries or DashboardQueries()
        self.mutations = mutations or DashboardMutations()
        self._storage = storage

    @property
    def storage(self) -> SellerPhotoStorage:
        if self._storage is None:
            self._storage = get_photo_storage()
        return self._storage

    # =========================================================================
    # EDIT LOCK
    # =========================================================================

    @classmethod
    def _lock_for(cls, seller_id: str) -> threading.Lock:
        with cls._locks_guard:
            lock = cls._locks.get(seller_id)
            if lock is None:
                lock = threading.Lock()
                cls._locks[seller_id] = lock
            return lock

    @contextmanager
    def edit_lock(self, seller_id: str):
        """Hold the edit lock of a profile; raises EditInProgressError if taken."""
        lock = self._lock_for(seller_id)
        if not lock.acquire(blocking=False):
            raise EditInProgressError(f"Seller {seller_id} is being edited by another request.")
        try:
            yield
        finally:
            lock.release()

    def is_being_edited(self, seller_id: str) -> bool:
        return self._lock_for(seller_id).locked()

    # =========================================================================
    # WORKFLOWS
    # =========================================================================

    def create_seller(
        self,
        data: Dict[str, Any],
        photo: Optional[PhotoUpload],
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> SellerResult:
        """Create the profile, then upload and attach its photo."""
        if photo is not None:
            try:
                validate_photo(photo)
            except PhotoValidationError as e:
                return SellerResult(error=str(e))

        created = self.mutations.create_seller_profile(data, actor_id, actor_email)
        if created.error:
            return SellerResult(error=created.error)

        profile = created.data
        if photo is None:
            return SellerResult(profile=profile)

        upload = self.storage.upload_seller_photo(photo.content, photo.filename, profile.id)
        if upload['error']:
            logger.warning(f"Seller {profile.id} created without photo: {upload['error']}")
            return SellerResult(profile=profile, photo_error=f"Photo upload failed: {upload['error']}")

        attached = self.mutations.update_seller_profile(
            profile.id, {'photo_url': upload['public_url']}, actor_id, actor_email
        )
        if attached.error:
            self._discard_upload(upload['public_url'])
            return SellerResult(profile=profile, photo_error=f"Could not attach photo: {attached.error}")

        return SellerResult(profile=attached.data)

    def update_seller(
        self,
        seller: Union[SellerProfile, str],
        data: Dict[str, Any],
        photo: Optional[PhotoUpload],
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> SellerResult:
        """
        Update profile fields and optionally replace the photo.

        If the new photo cannot be uploaded, the other fields are still
        written and ``photo_url`` keeps its previous value. The previous
        photo is deleted only after the update is confirmed.

        ``seller`` may be a stale snapshot; the stored row is re-read
        under the edit lock and its photo URL is the one replaced.
        """
        seller_id = seller.id if isinstance(seller, SellerProfile) else seller

        if photo is not None:
            try:
                validate_photo(photo)
            except PhotoValidationError as e:
                return SellerResult(error=str(e))

        try:
            with self.edit_lock(seller_id):
                current = self.queries.get_seller_profile(seller_id)
                if current is None:
                    return SellerResult(error="Seller profile not found.")
                return self._update_locked(current, dict(data or {}), photo, actor_id, actor_email)
        except EditInProgressError as e:
            logger.warning(str(e))
            return SellerResult(error=str(e))

    def _update_locked(
        self,
        seller: SellerProfile,
        changes: Dict[str, Any],
        photo: Optional[PhotoUpload],
        actor_id: str,
        actor_email: Optional[str]
    ) -> SellerResult:
        old_url = seller.photo_url
        new_url = None
        photo_error = None

        if photo is not None:
            upload = self.storage.upload_seller_photo(photo.content, photo.filename, seller.id)
            if upload['error']:
                photo_error = f"Photo upload failed: {upload['error']}"
                changes.pop('photo_url', None)
                logger.warning(f"Keeping previous photo of seller {seller.id}: {upload['error']}")
            else:
                new_url = upload['public_url']
                changes['photo_url'] = new_url

        updated = self.mutations.update_seller_profile(seller.id, changes, actor_id, actor_email)
        if updated.error:
            if new_url:
                self._discard_upload(new_url)
            return SellerResult(error=updated.error, photo_error=photo_error)

        profile = updated.data
        if 'photo_url' in changes and old_url and profile.photo_url != old_url:
            removed = self.storage.delete_seller_photo(old_url)
            if removed['error']:
                logger.warning(f"Previous photo of seller {seller.id} left in storage: {removed['error']}")

        return SellerResult(profile=profile, photo_error=photo_error)

    def delete_seller(
        self,
        seller: Union[SellerProfile, str],
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> SellerResult:
        """Delete the profile row. The photo stays in storage; see remove_seller_photo."""
        seller_id = seller.id if isinstance(seller, SellerProfile) else seller

        try:
            with self.edit_lock(seller_id):
                deleted = self.mutations.delete_seller_profile(seller_id, actor_id, actor_email)
        except EditInProgressError as e:
            logger.warning(str(e))
            return SellerResult(error=str(e))

        if deleted.error:
            return SellerResult(error=deleted.error)
        return SellerResult(profile=deleted.data)

    def remove_seller_photo(self, photo_url: Optional[str]) -> Optional[str]:
        """Delete a photo from storage. Returns the error message, None on success."""
        if not photo_url:
            return None
        return self.storage.delete_seller_photo(photo_url)['error']

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _discard_upload(self, public_url: str):
        removed = self.storage.delete_seller_photo(public_url)
        if removed['error']:
            logger.warning(f"Orphaned photo left in storage {public_url}: {removed['error']}")
