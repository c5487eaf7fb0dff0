from s3_docstore.files import FileReference
from s3_docstore.keys import CompositeKey
from s3_docstore.keys import LocKey
from s3_docstore.keys import SimpleKey
from s3_docstore.options import FileOptions
from s3_docstore.options import KeySharding
from s3_docstore.options import Options
from s3_docstore.options import QuerySafety
from s3_docstore.query import QueryResult
from s3_docstore.store import DocumentStore


__all__ = [
    "CompositeKey",
    "DocumentStore",
    "FileOptions",
    "FileReference",
    "KeySharding",
    "LocKey",
    "Options",
    "QueryResult",
    "QuerySafety",
    "SimpleKey",
]
