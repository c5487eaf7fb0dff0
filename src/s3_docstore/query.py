"""List-then-scan queries.

The backend cannot filter, so listing results are fetched and filtered in
memory, bounded by the store's QuerySafety options.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from dataclasses import field
from functools import cmp_to_key
from s3_docstore.errors import DocStoreError
from s3_docstore.errors import ScanLimitExceeded
from s3_docstore.errors import ValidationError
from s3_docstore.serializer import deserialize


_MISSING = object()


@dataclass
class QueryMetadata:
    total: int
    returned: int
    limit: int = None
    offset: int = 0

    @property
    def has_more(self):
        return self.offset + self.returned < self.total

    def to_dict(self):
        return {
            "total": self.total,
            "returned": self.returned,
            "limit": self.limit,
            "offset": self.offset,
            "has_more": self.has_more,
        }


@dataclass
class QueryResult:
    items: list = field(default_factory=list)
    metadata: QueryMetadata = None

    @classmethod
    def from_items(cls, items):
        items = list(items)
        return cls(items, QueryMetadata(total=len(items), returned=len(items)))


def list_all(store, query=None, location_chain=None, limit=None, offset=None):
    store.check_query_allowed()
    chain = store.validate_location_chain(location_chain)
    log = store.logger
    query = query or {}
    safety = store.options.query_safety

    candidates = candidate_paths(store, chain)
    count = len(candidates)
    if count > safety.max_scan_files:
        log.error(
            "Refusing to scan %d objects for %s (maxScanFiles=%d)",
            count,
            store.item_type,
            safety.max_scan_files,
        )
        raise ScanLimitExceeded(count, safety.max_scan_files)
    if count > safety.warn_threshold:
        log.warning(
            "Scanning %d objects for %s exceeds warnThreshold=%d; "
            "consider exact-key lookups or an external index",
            count,
            store.item_type,
            safety.warn_threshold,
        )

    items = fetch_documents(
        store.client, candidates, safety.download_concurrency, log
    )
    items = apply_filter(items, query.get("filter"))
    items = apply_sort(items, query.get("sort"))
    return paginate(
        items,
        limit if limit is not None else query.get("limit"),
        offset if offset is not None else query.get("offset"),
    )


def find_one(store, query=None, location_chain=None):
    result = list_all(store, query, location_chain, limit=1)
    return result.items[0] if result.items else None


def candidate_paths(store, chain):
    """Paths of the primary records that may belong to the store's schema.

    Without a location chain a contained schema is listed from its
    outermost location type, so items under every location are found.
    """
    paths = store.paths
    if chain or not store.location_types:
        prefix = paths.list_prefix(store.item_type, chain)
    else:
        prefix = paths.list_prefix(store.location_types[0])
    store.logger.debug("Listing %s", prefix)
    return [
        obj["name"]
        for obj in store.client.list_objects(prefix)
        if paths.matches(obj["name"], store.item_type, store.location_types)
    ]


def fetch_documents(client, paths, concurrency, log):
    """Download and deserialize paths in sequential batches of `concurrency`.

    Objects that fail to download or deserialize are skipped.
    """

    def fetch(path):
        try:
            data = client.download(path)
        except DocStoreError as e:
            log.warning("Skipping %s: %s", path, e)
            return None
        doc = deserialize(data, log)
        if doc is None:
            log.warning("Skipping %s: not a valid document", path)
        return doc

    items = []
    if not paths:
        return items
    with ThreadPoolExecutor(max_workers=concurrency) as executor:
        for start in range(0, len(paths), concurrency):
            batch = paths[start : start + concurrency]
            items.extend(doc for doc in executor.map(fetch, batch) if doc is not None)
    log.debug("Fetched %d of %d documents", len(items), len(paths))
    return items


def apply_filter(items, criteria):
    """Equality filter; all clauses must match."""
    if not criteria:
        return list(items)
    return [
        item
        for item in items
        if all(item.get(name, _MISSING) == value for name, value in criteria.items())
    ]


def apply_sort(items, sort):
    """Stable multi-key sort, first clause has the highest priority."""
    if not sort:
        return list(items)
    clauses = []
    for clause in sort:
        direction = clause.get("direction", "asc")
        if direction not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort direction {direction!r}")
        if not clause.get("field"):
            raise ValidationError(f"Sort clause without a field: {clause!r}")
        clauses.append((clause["field"], direction == "desc"))

    def compare(a, b):
        for name, descending in clauses:
            x, y = a.get(name), b.get(name)
            try:
                if x < y:
                    return 1 if descending else -1
                if x > y:
                    return -1 if descending else 1
            except TypeError:
                # incomparable values (e.g. None vs int) rank equal
                continue
        return 0

    return sorted(items, key=cmp_to_key(compare))


def paginate(items, limit=None, offset=None):
    offset = offset or 0
    if offset < 0 or (limit is not None and limit < 0):
        raise ValidationError("limit and offset must not be negative")
    total = len(items)
    page = items[offset:]
    if limit is not None:
        page = page[:limit]
    return QueryResult(
        page,
        QueryMetadata(total=total, returned=len(page), limit=limit, offset=offset),
    )
