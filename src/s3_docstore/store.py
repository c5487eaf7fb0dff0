from s3_docstore import files
from s3_docstore import merge
from s3_docstore import query as queries
from s3_docstore.errors import FinderNotFound
from s3_docstore.errors import ModeError
from s3_docstore.errors import NotFound
from s3_docstore.errors import QueryDisabledError
from s3_docstore.errors import ValidationError
from s3_docstore.interfaces import IAttachmentStore
from s3_docstore.interfaces import IDocumentStore
from s3_docstore.keys import as_loc_key
from s3_docstore.keys import CompositeKey
from s3_docstore.keys import make_key
from s3_docstore.keys import SimpleKey
from s3_docstore.keys import validate_type
from s3_docstore.options import Options
from s3_docstore.options import validate_bucket_name
from s3_docstore.options import validate_directory_paths
from s3_docstore.paths import PathBuilder
from s3_docstore.serializer import CONTENT_TYPE
from s3_docstore.serializer import deserialize
from s3_docstore.serializer import serialize
from zope.interface import implementer

import logging
import uuid


@implementer(IDocumentStore, IAttachmentStore)
class DocumentStore:
    """Document-store interface over a blob client.

    Documents of one schema (an item type below zero or more location
    types, outermost first) are stored as JSON objects at paths derived from
    their keys. There is no locking: update and upsert read, merge and write
    in separate backend calls, and of two concurrent writers to the same key
    the later write wins.
    """

    def __init__(
        self,
        client,
        item_type,
        location_types=(),
        directory_paths=None,
        options=None,
        logger=None,
    ):
        validate_type(item_type)
        for location_type in location_types:
            validate_type(location_type)
        self.client = client
        self.item_type = item_type
        self.location_types = tuple(location_types)
        self.options = (options or Options()).validate()
        self.logger = logger or logging.getLogger("s3_docstore")

        validate_bucket_name(client.bucket_name)
        self.directory_paths = list(
            directory_paths or (*self.location_types, self.item_type)
        )
        validate_directory_paths(self.directory_paths, self.depth)
        self.paths = PathBuilder(self.options)
        self.logger.debug(
            "DocumentStore for %s in bucket %s (mode=%s)",
            "/".join(self.directory_paths),
            client.bucket_name,
            self.options.mode,
        )

    def __repr__(self):
        return f"<DocumentStore {self.item_type!r} in {self.client.bucket_name!r}>"

    @property
    def depth(self):
        return len(self.location_types) + 1

    # -- Validation --

    def validate_key(self, key):
        if key.type != self.item_type:
            raise ValidationError(
                f"Key type {key.type!r} does not match item type {self.item_type!r}"
            )
        if self.location_types:
            if not isinstance(key, CompositeKey):
                raise ValidationError(
                    f"Items of type {self.item_type!r} need a composite key "
                    f"with {len(self.location_types)} location(s)"
                )
            self.validate_location_chain(key.location_chain, required=True)
        elif not isinstance(key, SimpleKey):
            raise ValidationError(
                f"Items of type {self.item_type!r} need a simple key"
            )
        return key

    def validate_location_chain(self, location_chain, required=False):
        chain = tuple(as_loc_key(loc) for loc in location_chain or ())
        if not chain and not required:
            return chain
        if len(chain) != len(self.location_types):
            raise ValidationError(
                f"Location chain has {len(chain)} item(s) but "
                f"{self.item_type!r} expects {len(self.location_types)}"
            )
        for loc, expected in zip(chain, self.location_types):
            if loc.type != expected:
                raise ValidationError(
                    f"Location type {loc.type!r} does not match {expected!r}"
                )
        return chain

    def check_item_operations(self):
        if self.options.files_only:
            raise ModeError(
                "Item operations are disabled in files-only mode. This store "
                "is configured to handle only file attachments."
            )

    def check_query_allowed(self):
        self.check_item_operations()
        if self.options.query_safety.disable_query_operations:
            raise QueryDisabledError(
                "Query operations are disabled via "
                "querySafety.disableQueryOperations. Use get() with exact keys."
            )

    # -- Items --

    def get(self, key):
        self.check_item_operations()
        key = self.validate_key(key)
        path = self.paths.encode(key)
        if not self.client.exists(path):
            self.logger.debug("No document at %s", path)
            return None
        try:
            data = self.client.download(path)
        except NotFound:
            # deleted after the exists check
            self.logger.debug("Document at %s vanished before download", path)
            return None
        doc = deserialize(data, self.logger)
        if doc is None:
            self.logger.error("Stored document at %s is unusable", path)
        return doc

    def create(self, doc, key=None, location_chain=None):
        """Write a document, generating an id when no key is given.

        Writes unconditionally: an existing document at the same path is
        replaced.
        """
        self.check_item_operations()
        if key is None:
            chain = self.validate_location_chain(
                location_chain, required=bool(self.location_types)
            )
            key = make_key(self.item_type, doc.get("id") or str(uuid.uuid4()), chain)
        key = self.validate_key(key)
        full = merge.merge_documents({}, doc, key, merge.SHALLOW)
        self._write(key, full)
        self.logger.info("Created %s", self.paths.encode(key))
        return full

    def update(self, key, partial, merge_strategy=merge.DEEP):
        self.check_item_operations()
        key = self.validate_key(key)
        if merge_strategy not in merge.STRATEGIES:
            raise ValidationError(f"Invalid merge strategy {merge_strategy!r}")
        existing = self.get(key)
        if existing is None:
            raise NotFound(f"Item not found for update: {self.paths.encode(key)}")
        return self._update_from(existing, key, partial, merge_strategy)

    def upsert(self, key, doc, location_chain=None, merge_strategy=merge.DEEP):
        self.check_item_operations()
        key = self.validate_key(key)
        if merge_strategy not in merge.STRATEGIES:
            raise ValidationError(f"Invalid merge strategy {merge_strategy!r}")
        if location_chain is not None:
            chain = self.validate_location_chain(location_chain)
            if chain and chain != key.location_chain:
                raise ValidationError("Location chain does not match the key")
        try:
            existing = self.get(key)
        except NotFound:
            existing = None
        if existing is not None:
            self.logger.debug("Upsert: updating %s", self.paths.encode(key))
            return self._update_from(existing, key, doc, merge_strategy)
        self.logger.debug("Upsert: creating %s", self.paths.encode(key))
        return self.create(doc, key=key)

    def remove(self, key):
        """Delete a document and return its last stored value, if any."""
        self.check_item_operations()
        key = self.validate_key(key)
        existing = self.get(key)
        path = self.paths.encode(key)
        self.client.delete(path)
        self.logger.info("Removed %s", path)
        return existing

    def _update_from(self, existing, key, partial, merge_strategy):
        updated = merge.merge_documents(existing, partial, key, merge_strategy)
        self._write(key, updated)
        self.logger.info(
            "Updated %s (%s merge)", self.paths.encode(key), merge_strategy
        )
        return updated

    def _write(self, key, doc):
        self.client.upload(self.paths.encode(key), serialize(doc), CONTENT_TYPE)

    # -- Queries --

    def list_all(self, query=None, location_chain=None, limit=None, offset=None):
        return queries.list_all(self, query, location_chain, limit, offset)

    def find_one(self, query=None, location_chain=None):
        return queries.find_one(self, query, location_chain)

    def find(self, finder, params=None, location_chain=None, limit=None, offset=None):
        """Run a named finder, always returning a QueryResult."""
        self.check_item_operations()
        result = self._finder(finder)(
            self, params or {}, location_chain, limit, offset
        )
        if isinstance(result, queries.QueryResult):
            return result
        return queries.QueryResult.from_items(result or [])

    def find_first(self, finder, params=None, location_chain=None):
        self.check_item_operations()
        result = self._finder(finder)(self, params or {}, location_chain, 1, None)
        items = result.items if isinstance(result, queries.QueryResult) else result
        return items[0] if items else None

    def _finder(self, name):
        try:
            return self.options.finders[name]
        except KeyError:
            raise FinderNotFound(f"Finder {name!r} not found") from None

    # -- Attachments --

    def upload_file(self, key, label, name, data, **options):
        return files.upload_file(self, key, label, name, data, **options)

    def download_file(self, key, label, name):
        return files.download_file(self, key, label, name)

    def delete_file(self, key, label, name):
        return files.delete_file(self, key, label, name)

    def list_files(self, key, label=None):
        return files.list_files(self, key, label)

    def get_signed_url(self, key, label, name, **options):
        return files.get_signed_url(self, key, label, name, **options)
