import asyncio
import io
import logging
import threading
from typing import Optional

from google.oauth2.credentials import Credentials
from google.auth.transport.requests import Request
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

import config

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/drive.file', 'https://www.googleapis.com/auth/drive']


class StorageError(Exception):
    pass


class BlobNotFoundError(StorageError):
    pass


class BlobStorage:
    """Object storage keyed by ``{ownerId}/{timestamp}-{fileName}``."""

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store ``data`` under ``key`` and return its public URL."""
        raise NotImplementedError

    async def get(self, key: str) -> bytes:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def public_url(self, key: str) -> str:
        raise NotImplementedError


class DriveStorage(BlobStorage):
    """
    Blob storage backed by a Google Drive folder.

    Each blob is a Drive file whose name is the storage key. Credentials come
    from a long-lived OAuth refresh token and are refreshed on demand.
    Drive client calls block, so every operation runs in a worker thread with
    its own service object.
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        folder_id: Optional[str] = None,
    ):
        self.client_id = client_id or config.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or config.GOOGLE_CLIENT_SECRET
        self.refresh_token = refresh_token or config.GOOGLE_REFRESH_TOKEN
        self.folder_id = folder_id or config.GOOGLE_DRIVE_FOLDER_ID
        self._credentials: Optional[Credentials] = None
        self._credentials_lock = threading.Lock()

    def _check_settings(self):
        missing = [
            name for name, value in (
                ("GOOGLE_CLIENT_ID", self.client_id),
                ("GOOGLE_CLIENT_SECRET", self.client_secret),
                ("GOOGLE_REFRESH_TOKEN", self.refresh_token),
                ("GOOGLE_DRIVE_FOLDER_ID", self.folder_id),
            ) if not value
        ]
        if missing:
            raise StorageError(f"Google Drive storage is not configured, missing: {', '.join(missing)}")

    def _get_credentials(self) -> Credentials:
        # Called from several worker threads at once during a screening run.
        with self._credentials_lock:
            if self._credentials and self._credentials.valid:
                return self._credentials

            self._check_settings()
            if not self._credentials:
                self._credentials = Credentials(
                    token=None,
                    refresh_token=self.refresh_token,
                    token_uri='https://oauth2.googleapis.com/token',
                    client_id=self.client_id,
                    client_secret=self.client_secret,
                    scopes=SCOPES
                )
            try:
                self._credentials.refresh(Request())
                logger.info("Google Drive access token refreshed successfully.")
            except Exception as e:
                logger.error(f"Error refreshing Google Drive access token: {e}")
                raise StorageError(f"Failed to authenticate with Google Drive: {e}") from e
            return self._credentials

    def _service(self):
        return build('drive', 'v3', credentials=self._get_credentials(), cache_discovery=False)

    def _find_file(self, service, key: str) -> dict:
        escaped = key.replace("\\", "\\\\").replace("'", "\\'")
        query = f"name = '{escaped}' and '{self.folder_id}' in parents and trashed = false"
        found = service.files().list(q=query, fields="files(id, webViewLink)", pageSize=1).execute()
        files = found.get("files", [])
        if not files:
            raise BlobNotFoundError(f"Blob '{key}' not found in Google Drive")
        return files[0]

    def _put(self, key: str, data: bytes, content_type: Optional[str]) -> str:
        service = self._service()
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=content_type or "application/octet-stream", resumable=False)
        file_metadata = {
            'name': key,
            'parents': [self.folder_id]
        }
        uploaded_file = service.files().create(
            body=file_metadata,
            media_body=media,
            fields='id, webViewLink'
        ).execute()
        logger.info(f"Blob '{key}' uploaded to Drive. Link: {uploaded_file.get('webViewLink')}")
        return uploaded_file.get("webViewLink")

    def _get(self, key: str) -> bytes:
        service = self._service()
        file_id = self._find_file(service, key)["id"]
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, service.files().get_media(fileId=file_id))
        done = False
        while not done:
            _, done = downloader.next_chunk()
        return buffer.getvalue()

    def _delete(self, key: str) -> None:
        service = self._service()
        file_id = self._find_file(service, key)["id"]
        service.files().delete(fileId=file_id).execute()
        logger.info(f"Blob '{key}' (Drive ID '{file_id}') deleted from Google Drive.")

    def _public_url(self, key: str) -> str:
        return self._find_file(self._service(), key).get("webViewLink")

    async def _run(self, action: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except StorageError:
            raise
        except HttpError as e:
            if e.resp.status == 404:
                raise BlobNotFoundError(f"Blob not found while trying to {action}: {e}") from e
            logger.error(f"Google Drive error during {action}: {e}")
            raise StorageError(f"Google Drive error during {action}: {e}") from e
        except Exception as e:
            logger.error(f"Unexpected storage error during {action}: {e}")
            raise StorageError(f"Unexpected storage error during {action}: {e}") from e

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        return await self._run("upload", self._put, key, data, content_type)

    async def get(self, key: str) -> bytes:
        return await self._run("download", self._get, key)

    async def delete(self, key: str) -> None:
        await self._run("delete", self._delete, key)

    async def public_url(self, key: str) -> str:
        return await self._run("resolve URL", self._public_url, key)
