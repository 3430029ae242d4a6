"""
Supabase Storage Manager

Handles uploading podcast audio to the Supabase storage bucket.
"""

import logging
from typing import Optional

from core.config import Config

logger = logging.getLogger(__name__)


class StorageManager:
    """Manage Supabase storage uploads"""

    AUDIO_MIME_TYPES = ["audio/mpeg", "audio/mp4", "audio/wav", "audio/webm"]

    def __init__(self, supabase=None, bucket_name: Optional[str] = None):
        """
        Args:
            supabase: Supabase client (defaults to the shared admin client)
            bucket_name: Bucket to use (defaults to Config.AUDIO_BUCKET)
        """
        if supabase is None:
            from app.middleware.auth import get_supabase_admin
            supabase = get_supabase_admin()

        self.supabase = supabase
        self.bucket_name = bucket_name or Config.AUDIO_BUCKET

    def ensure_bucket_exists(self) -> bool:
        """
        Ensure the bucket exists, create it as public if not

        Returns:
            True if bucket exists or was created successfully
        """
        try:
            buckets = self.supabase.storage.list_buckets()
            if any(bucket.name == self.bucket_name for bucket in buckets):
                return True

            logger.info(f"📦 Creating Supabase storage bucket: {self.bucket_name}")
            self.supabase.storage.create_bucket(
                id=self.bucket_name,
                name=self.bucket_name,
                options={"public": True, "allowed_mime_types": self.AUDIO_MIME_TYPES}
            )
            logger.info(f"✅ Created bucket: {self.bucket_name}")
            return True

        except Exception as e:
            logger.error(f"❌ Error ensuring bucket exists: {e}", exc_info=True)
            return False

    def upload_audio(self, audio: bytes, user_id: str, filename: str,
                     content_type: str = "audio/mpeg") -> str:
        """
        Upload podcast audio and return its public URL

        Args:
            audio: Audio bytes
            user_id: Owner, used as the folder name
            filename: File name inside podcasts/{user_id}/

        Returns:
            Public URL of the uploaded file

        Raises:
            RuntimeError: If the upload fails
        """
        self.ensure_bucket_exists()
        storage_path = f"podcasts/{user_id}/{filename}"

        logger.info(f"📤 Uploading audio to storage: {storage_path} ({len(audio) / 1024 / 1024:.1f}MB)")
        try:
            self.supabase.storage.from_(self.bucket_name).upload(
                path=storage_path,
                file=audio,
                file_options={"content-type": content_type, "upsert": "true"}
            )
        except Exception as e:
            logger.error(f"❌ Failed to upload audio: {e}", exc_info=True)
            raise RuntimeError(f"Failed to upload audio: {e}") from e

        public_url = self.supabase.storage.from_(self.bucket_name).get_public_url(storage_path)
        logger.info(f"✅ Audio uploaded successfully: {public_url}")
        return public_url
