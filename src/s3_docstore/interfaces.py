from zope.interface import Attribute
from zope.interface import Interface


class IBlobClient(Interface):
    """Abstraction over an object store without querying or transactions."""

    bucket_name = Attribute("Name of the bucket the client writes to.")

    def exists(path):
        """Return True if an object exists at path."""

    def upload(path, data, content_type, metadata=None, content_md5=None):
        """Store bytes at path, replacing any existing object."""

    def download(path):
        """Return the bytes stored at path."""

    def delete(path):
        """Delete the object at path. Missing objects are not an error."""

    def head_object(path):
        """Return a metadata mapping for the object at path, or None.

        Keys: name, size, content_type, created_at, checksum, metadata.
        """

    def list_objects(prefix):
        """Yield mappings (name, size, created_at, checksum) below prefix."""

    def signed_url(
        path, action, ttl, response_content_type=None, content_disposition=None
    ):
        """Return a time-limited URL for read, write or delete of path."""


class IDocumentStore(Interface):
    """Document CRUD and best-effort queries on top of an IBlobClient."""

    def get(key):
        """Return the stored document or None."""

    def create(doc, key=None, location_chain=None):
        """Write a new document and return it."""

    def update(key, partial, merge_strategy="deep"):
        """Merge partial into the stored document and return the result."""

    def upsert(key, doc, location_chain=None, merge_strategy="deep"):
        """Update the document if it exists, create it otherwise."""

    def remove(key):
        """Delete the document, returning the last stored value or None."""

    def list_all(query=None, location_chain=None, limit=None, offset=None):
        """Return a QueryResult of matching documents."""

    def find_one(query=None, location_chain=None):
        """Return the first matching document or None."""


class IAttachmentStore(Interface):
    """Binary attachments stored below an item's path."""

    def upload_file(key, label, name, data, **options):
        """Store an attachment and return its FileReference."""

    def download_file(key, label, name):
        """Return the attachment's bytes."""

    def delete_file(key, label, name):
        """Delete an attachment."""

    def list_files(key, label=None):
        """Return FileReferences for an item, optionally for one label."""

    def get_signed_url(key, label, name, **options):
        """Return a time-limited URL for an attachment."""
