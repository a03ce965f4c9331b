"""Bucket-style object storage on the local filesystem.

Each bucket is a directory under ``STORAGE_ROOT``. Objects are addressed by
slash-separated keys and exposed at
``<base>/storage/v1/object/public/<bucket>/<key>``, the same URL shape the
hosted storage service uses, so stored URLs and the path extractors below
work against either.
"""

import logging
import os
import re
import shutil
import time
from urllib.parse import urlparse

from flask import current_app, has_request_context, request
from werkzeug.local import LocalProxy
from werkzeug.security import safe_join

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/storage/v1/object/public"

_FEATURED_RE = re.compile(r"/storage/v1/object/public/media/featured/([^?]+)")
_CONTENT_RE = re.compile(r"/storage/v1/object/public/media/content/([^?]+)")
_MEDIA_RE = re.compile(r"/storage/v1/object/public/media/([^?]+)")
_CONTENT_IN_HTML_RE = re.compile(r"/storage/v1/object/public/media/content/([^\"'\s)?]+)")


class StorageError(Exception):
    pass


class BucketStorage:
    def __init__(self, root=None, public_base=""):
        self.root = root
        self.public_base = public_base

    def init_app(self, app):
        self.root = app.config["STORAGE_ROOT"]
        self.public_base = app.config.get("STORAGE_PUBLIC_URL", "")
        os.makedirs(self.root, exist_ok=True)
        for name in app.config.get("STORAGE_BUCKETS", ()):
            self.create_bucket(name)
        app.extensions["bucket_storage"] = self

    # ----- buckets -----

    def _bucket_dir(self, bucket):
        path = safe_join(self.root, bucket)
        if path is None or "/" in bucket:
            raise StorageError(f"Invalid bucket name: {bucket!r}")
        return path

    def list_buckets(self):
        if not os.path.isdir(self.root):
            return []
        return sorted(
            name for name in os.listdir(self.root)
            if os.path.isdir(os.path.join(self.root, name))
        )

    def bucket_exists(self, bucket):
        return os.path.isdir(self._bucket_dir(bucket))

    def create_bucket(self, bucket):
        os.makedirs(self._bucket_dir(bucket), exist_ok=True)

    # ----- objects -----

    def path_for(self, bucket, key):
        """Filesystem path of an object, or None when the key escapes the bucket."""
        if not key or key.startswith("/") or "\\" in key:
            return None
        return safe_join(self._bucket_dir(bucket), key)

    def _require(self, bucket, key):
        if not self.bucket_exists(bucket):
            raise StorageError(f"Bucket not found: {bucket}")
        path = self.path_for(bucket, key)
        if path is None:
            raise StorageError(f"Invalid object key: {key!r}")
        return path

    def upload(self, bucket, key, data, upsert=False):
        path = self._require(bucket, key)
        if os.path.exists(path) and not upsert:
            raise StorageError(f"The resource already exists: {bucket}/{key}")
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            if isinstance(data, (bytes, bytearray)):
                with open(path, "wb") as fh:
                    fh.write(data)
            elif hasattr(data, "save"):
                data.save(path)
            else:
                with open(path, "wb") as fh:
                    shutil.copyfileobj(data, fh)
        except OSError as e:
            raise StorageError(f"Upload to {bucket}/{key} failed: {e}") from e
        logger.info("Stored %s/%s", bucket, key)
        return key

    def list(self, bucket, prefix=""):
        if not self.bucket_exists(bucket):
            raise StorageError(f"Bucket not found: {bucket}")
        base = self._bucket_dir(bucket)
        keys = []
        try:
            for dirpath, _dirnames, filenames in os.walk(base):
                for name in filenames:
                    rel = os.path.relpath(os.path.join(dirpath, name), base)
                    key = rel.replace(os.sep, "/")
                    if key.startswith(prefix):
                        keys.append(key)
        except OSError as e:
            raise StorageError(f"Listing {bucket} failed: {e}") from e
        return sorted(keys)

    def remove(self, bucket, keys):
        """Delete objects; keys that do not exist are skipped. Returns removed keys."""
        removed = []
        for key in keys:
            path = self._require(bucket, key)
            if not os.path.isfile(path):
                continue
            try:
                os.remove(path)
            except OSError as e:
                raise StorageError(f"Removing {bucket}/{key} failed: {e}") from e
            removed.append(key)
        return removed

    def public_url(self, bucket, key):
        path = f"{PUBLIC_PREFIX}/{bucket}/{key}"
        if self.public_base:
            return self.public_base.rstrip("/") + path
        if has_request_context():
            return request.host_url.rstrip("/") + path
        return path

    def ensure_writable(self, bucket):
        """Check the bucket exists, can be listed and accepts a probe write."""
        if not self.bucket_exists(bucket):
            raise StorageError(
                f"The '{bucket}' storage bucket does not exist. "
                "Run `flask init-db` to create the storage buckets."
            )
        try:
            self.list(bucket)
        except StorageError as e:
            raise StorageError(
                f"You don't have permission to access the {bucket} storage."
            ) from e

        probe = f"test-permissions-{int(time.time() * 1000)}.txt"
        try:
            self.upload(bucket, probe, b"test", upsert=True)
        except StorageError as e:
            raise StorageError(
                f"You don't have permission to upload to the {bucket} storage."
            ) from e
        finally:
            try:
                self.remove(bucket, [probe])
            except StorageError:
                logger.info("Could not remove probe file %s/%s", bucket, probe)


def extract_path_from_url(url):
    """Recover the `media` object key from a public URL. First match wins."""
    if not url:
        return None

    match = _FEATURED_RE.search(url)
    if match:
        return f"featured/{match.group(1)}"
    match = _CONTENT_RE.search(url)
    if match:
        return f"content/{match.group(1)}"
    match = _MEDIA_RE.search(url)
    if match:
        return match.group(1)

    # Anything else: take what follows the `media` path segment
    parts = urlparse(url).path.split("/")
    if "media" in parts:
        idx = parts.index("media")
        extracted = "/".join(parts[idx + 1:])
        if extracted:
            return extracted

    logger.warning("No storage path found in URL: %s", url)
    return None


def extract_media_paths_from_content(html):
    """Keys of every `media/content/` image referenced in a post body."""
    return [f"content/{m}" for m in _CONTENT_IN_HTML_RE.findall(html or "")]


# The storage bound to the active app; set up by BucketStorage.init_app
bucket_storage = LocalProxy(lambda: current_app.extensions["bucket_storage"])
