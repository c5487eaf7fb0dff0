"""Binary attachments stored below an item's path.

References to uploaded files are mirrored into the owning document's
``files`` attribute (``{label: [reference, ...]}``). The blob write and the
document update are separate backend calls; when the second one fails the
failure is reported as a MirrorError instead of being raised.
"""

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from s3_docstore import merge
from s3_docstore.errors import DocStoreError
from s3_docstore.errors import MirrorError
from s3_docstore.errors import NotFound
from s3_docstore.errors import ValidationError
from s3_docstore.keys import validate_id

import base64
import fnmatch
import hashlib
import re


DEFAULT_CONTENT_TYPE = "application/octet-stream"
SIGNED_URL_ACTIONS = ("read", "write", "delete")
DEFAULT_EXPIRATION = 3600

# object metadata written by upload_file itself
_RESERVED_METADATA = ("label", "original-filename", "checksum")


@dataclass
class FileReference:
    name: str
    label: str
    size: int
    content_type: str
    uploaded_at: datetime
    checksum: str = None
    metadata: dict = None
    mirror_error: MirrorError = field(default=None, compare=False, repr=False)

    def to_dict(self):
        data = {
            "name": self.name,
            "label": self.label,
            "size": self.size,
            "content_type": self.content_type,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
        if self.checksum is not None:
            data["checksum"] = self.checksum
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data):
        uploaded_at = data.get("uploaded_at")
        if isinstance(uploaded_at, str):
            uploaded_at = datetime.fromisoformat(uploaded_at)
        return cls(
            name=data["name"],
            label=data["label"],
            size=data.get("size", 0),
            content_type=data.get("content_type", DEFAULT_CONTENT_TYPE),
            uploaded_at=uploaded_at,
            checksum=data.get("checksum"),
            metadata=data.get("metadata"),
        )


def checksum_for(data):
    """Base64 MD5 of the content, as S3 expects for Content-MD5."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


def content_type_allowed(content_type, patterns):
    """Match against glob ('image/*') or regular expression patterns."""
    for pattern in patterns:
        if fnmatch.fnmatchcase(content_type, pattern):
            return True
        try:
            if re.fullmatch(pattern, content_type):
                return True
        except re.error:
            continue
    return False


def upload_file(
    store,
    key,
    label,
    name,
    data,
    content_type=None,
    metadata=None,
    compute_checksum=None,
):
    key = store.validate_key(key)
    _validate_names(label, name)
    options = store.options.files
    content_type = content_type or DEFAULT_CONTENT_TYPE

    if options.max_file_size is not None and len(data) > options.max_file_size:
        raise ValidationError(
            f"File size ({len(data)} bytes) exceeds maximum allowed size "
            f"({options.max_file_size} bytes)"
        )
    if options.allowed_content_types and not content_type_allowed(
        content_type, options.allowed_content_types
    ):
        raise ValidationError(
            f"Content type {content_type} not allowed. "
            f"Allowed types: {', '.join(options.allowed_content_types)}"
        )

    if compute_checksum is None:
        compute_checksum = options.compute_checksums
    checksum = checksum_for(data) if compute_checksum else None

    path = store.paths.file_path_for(key, label, name)
    object_metadata = dict(metadata or {})
    object_metadata.update({"label": label, "original-filename": name})
    if checksum:
        object_metadata["checksum"] = checksum
    store.client.upload(
        path, data, content_type, metadata=object_metadata, content_md5=checksum
    )
    store.logger.info("Uploaded file %s (%d bytes)", path, len(data))

    reference = FileReference(
        name=name,
        label=label,
        size=len(data),
        content_type=content_type,
        uploaded_at=datetime.now(timezone.utc),
        checksum=checksum,
        metadata=dict(metadata) if metadata else None,
    )

    if _mirroring(store):

        def add(files):
            entries = list(files.get(label, []))
            for index, entry in enumerate(entries):
                if entry.get("name") == name:
                    entries[index] = reference.to_dict()
                    break
            else:
                entries.append(reference.to_dict())
            files[label] = entries
            return files

        reference.mirror_error = _mirror(store, key, path, add, merge.DEEP)
    return reference


def download_file(store, key, label, name):
    key = store.validate_key(key)
    _validate_names(label, name)
    path = store.paths.file_path_for(key, label, name)
    if not store.client.exists(path):
        raise NotFound(f"File not found: {label}/{name}")
    data = store.client.download(path)
    store.logger.debug("Downloaded file %s (%d bytes)", path, len(data))
    return data


def delete_file(store, key, label, name):
    """Delete an attachment.

    Returns a MirrorError if the owning document could not be updated,
    otherwise None.
    """
    key = store.validate_key(key)
    _validate_names(label, name)
    path = store.paths.file_path_for(key, label, name)
    store.client.delete(path)
    store.logger.info("Deleted file %s", path)

    if not _mirroring(store):
        return None

    def drop(files):
        if label not in files:
            return None
        entries = [entry for entry in files[label] if entry.get("name") != name]
        if entries:
            files[label] = entries
        else:
            del files[label]
        return files

    # shallow, so a dropped label does not survive the merge
    return _mirror(store, key, path, drop, merge.SHALLOW)


def list_files(store, key, label=None):
    key = store.validate_key(key)
    if label is None:
        prefix = store.paths.files_dir_for(key) + "/"
    else:
        validate_id(label, "label")
        prefix = store.paths.label_dir_for(key, label) + "/"

    references = []
    for obj in store.client.list_objects(prefix):
        head = store.client.head_object(obj["name"])
        if head is None:
            # deleted since listing
            continue
        parsed = store.paths.parse_file_path(key, obj["name"])
        if parsed is None:
            continue
        file_label, file_name = parsed
        object_metadata = dict(head.get("metadata") or {})
        custom = {
            k: v for k, v in object_metadata.items() if k not in _RESERVED_METADATA
        }
        references.append(
            FileReference(
                name=file_name,
                label=file_label,
                size=head.get("size", obj.get("size", 0)),
                content_type=head.get("content_type") or DEFAULT_CONTENT_TYPE,
                uploaded_at=head.get("created_at") or obj.get("created_at"),
                checksum=object_metadata.get("checksum") or head.get("checksum"),
                metadata=custom or None,
            )
        )
    store.logger.debug("Listed %d files below %s", len(references), prefix)
    return references


def get_signed_url(
    store,
    key,
    label,
    name,
    action="read",
    expiration_seconds=DEFAULT_EXPIRATION,
    response_content_type=None,
    content_disposition=None,
):
    key = store.validate_key(key)
    _validate_names(label, name)
    if action not in SIGNED_URL_ACTIONS:
        raise ValidationError(
            f"Invalid signed URL action {action!r}, "
            f"expected one of {', '.join(SIGNED_URL_ACTIONS)}"
        )
    if expiration_seconds is None or expiration_seconds <= 0:
        raise ValidationError("expiration_seconds must be positive")
    path = store.paths.file_path_for(key, label, name)
    if not store.client.exists(path):
        raise NotFound(f"File not found: {label}/{name}")
    url = store.client.signed_url(
        path,
        action,
        expiration_seconds,
        response_content_type=response_content_type,
        content_disposition=content_disposition,
    )
    store.logger.debug(
        "Signed %s URL for %s valid %ds", action, path, expiration_seconds
    )
    return url


def _mirroring(store):
    return store.options.files.include_metadata_in_item and not store.options.files_only


def _mirror(store, key, path, change, strategy):
    """Apply change to the owning document's files mapping.

    change receives a copy of the mapping and returns the new one, or None
    when there is nothing to write. Missing documents are skipped.
    """
    try:
        doc = store.get(key)
        if doc is None:
            store.logger.debug("No document for %s, skipping file metadata", path)
            return None
        files = change(dict(doc.get("files") or {}))
        if files is None:
            return None
        store.update(key, {"files": files}, strategy)
    except DocStoreError as e:
        store.logger.warning(
            "File %s changed but its metadata could not be mirrored: %s", path, e
        )
        error = MirrorError(
            f"Could not mirror file metadata for {path}: {e}", path=path
        )
        error.__cause__ = e
        return error
    return None


def _validate_names(label, name):
    validate_id(label, "label")
    validate_id(name, "file name")
