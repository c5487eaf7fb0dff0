from dataclasses import dataclass
from dataclasses import field
from s3_docstore.errors import ValidationError

import re


MODE_FULL = "full"
MODE_FILES_ONLY = "files-only"
MODES = (MODE_FULL, MODE_FILES_ONLY)

_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*[a-z0-9]$")
_PATH_RE = re.compile(r"[a-zA-Z0-9._/-]*")


@dataclass
class KeySharding:
    enabled: bool = False
    levels: int = 2
    chars_per_level: int = 1


@dataclass
class QuerySafety:
    max_scan_files: int = 1000
    warn_threshold: int = 100
    disable_query_operations: bool = False
    download_concurrency: int = 10


@dataclass
class FileOptions:
    directory: str = "_files"
    max_file_size: int = None
    allowed_content_types: list = None
    include_metadata_in_item: bool = True
    compute_checksums: bool = True


@dataclass
class Options:
    """Construction-time options of a DocumentStore."""

    base_path: str = ""
    use_json_extension: bool = True
    mode: str = MODE_FULL
    key_sharding: KeySharding = field(default_factory=KeySharding)
    query_safety: QuerySafety = field(default_factory=QuerySafety)
    files: FileOptions = field(default_factory=FileOptions)
    finders: dict = field(default_factory=dict)

    def __post_init__(self):
        self.base_path = (self.base_path or "").rstrip("/")

    @property
    def files_only(self):
        return self.mode == MODE_FILES_ONLY

    def validate(self):
        if self.mode not in MODES:
            raise ValidationError(
                f"Invalid mode {self.mode!r}, expected one of {', '.join(MODES)}"
            )
        if self.base_path:
            validate_path_segment(self.base_path, "base path")
        sharding = self.key_sharding
        if sharding.levels < 1 or sharding.chars_per_level < 1:
            raise ValidationError(
                "Key sharding levels and chars per level must be at least 1"
            )
        safety = self.query_safety
        if safety.max_scan_files < 1 or safety.download_concurrency < 1:
            raise ValidationError(
                "maxScanFiles and downloadConcurrency must be at least 1"
            )
        if safety.warn_threshold > safety.max_scan_files:
            raise ValidationError(
                f"warnThreshold ({safety.warn_threshold}) must not exceed "
                f"maxScanFiles ({safety.max_scan_files})"
            )
        files = self.files
        validate_path_segment(files.directory, "files directory")
        if "/" in files.directory:
            raise ValidationError(
                f"files directory must be a single path segment: {files.directory!r}"
            )
        if files.max_file_size is not None and files.max_file_size < 0:
            raise ValidationError("maxFileSize must not be negative")
        for name, finder in self.finders.items():
            if not callable(finder):
                raise ValidationError(f"Finder {name!r} is not callable")
        return self


def validate_bucket_name(bucket_name):
    if not bucket_name or not bucket_name.strip():
        raise ValidationError("Bucket name is required")
    if not 3 <= len(bucket_name) <= 63:
        raise ValidationError("Bucket name must be between 3 and 63 characters")
    if not _BUCKET_NAME_RE.match(bucket_name):
        raise ValidationError(
            f"Invalid bucket name {bucket_name!r}. Only lowercase letters, "
            "numbers, hyphens, underscores and dots are allowed."
        )


def validate_path_segment(path, what="directory path"):
    if not path or not path.strip():
        raise ValidationError(f"{what} must not be empty")
    if ".." in path or "//" in path or path.startswith("/"):
        raise ValidationError(f"Invalid {what}: {path!r}")
    if not _PATH_RE.fullmatch(path):
        raise ValidationError(
            f"{what} contains invalid characters: {path!r}. "
            "Only alphanumeric characters, dots, hyphens, underscores, "
            "and slashes are allowed."
        )


def validate_directory_paths(directory_paths, depth):
    """One sane directory path per schema level."""
    if not directory_paths:
        raise ValidationError("Directory paths are required")
    if len(directory_paths) != depth:
        raise ValidationError(
            f"Expected {depth} directory path(s), one per key level, "
            f"got {len(directory_paths)}"
        )
    for path in directory_paths:
        validate_path_segment(path)
