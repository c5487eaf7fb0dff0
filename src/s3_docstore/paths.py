from s3_docstore.keys import SimpleKey

import logging


logger = logging.getLogger(__name__)

JSON_EXTENSION = ".json"


def shard_segments(id_, levels, chars_per_level):
    """Shard prefixes for an id, e.g. 'abc123', 2 levels, 1 char -> ['a', 'ab'].

    Stops early when the id is too short for a level.
    """
    segments = []
    for level in range(1, levels + 1):
        needed = level * chars_per_level
        if len(id_) < needed:
            break
        segments.append(id_[:needed].lower())
    return segments


def _join(*parts):
    return "/".join(p for p in parts if p)


class PathBuilder:
    """Maps keys to object paths and, best effort, back.

    Item path layout::

        [base_path/](ancestor_type/ancestor_id/)*type/[shard/...]id[.json]

    Attachments live below the item path without its extension::

        <item path>/<files directory>/<label>/<name>
    """

    def __init__(self, options):
        self.base_path = options.base_path
        self.use_json_extension = options.use_json_extension
        self.sharding = options.key_sharding
        self.files_directory = options.files.directory

    def encode(self, key):
        parts = [self.base_path]
        for loc in key.location_chain:
            parts.extend((loc.type, loc.id))
        parts.append(key.type)
        if self.sharding.enabled:
            parts.extend(self.shards_for(key.id))
        parts.append(self._filename(key.id))
        return _join(*parts)

    def shards_for(self, id_):
        return shard_segments(
            id_, self.sharding.levels, self.sharding.chars_per_level
        )

    def decode(self, path):
        """Best-effort inverse of encode.

        Only the innermost (type, id) pair is recovered, as a SimpleKey.
        Ancestors of deeply nested or sharded paths cannot be told apart
        from shard segments, so callers needing the full key must carry it.
        Returns None for malformed paths.
        """
        if not path:
            return None
        working = path
        if self.base_path:
            if not working.startswith(self.base_path + "/"):
                return None
            working = working[len(self.base_path) + 1 :]
        parts = [p for p in working.split("/") if p]
        if len(parts) < 2:
            return None
        id_ = self.strip_extension(parts[-1])
        type_index = len(parts) - 2
        if self.sharding.enabled:
            type_index -= len(self.shards_for(id_))
        if type_index < 0:
            return None
        try:
            return SimpleKey(parts[type_index], id_)
        except ValueError:
            logger.debug("Could not decode path %s", path)
            return None

    def list_prefix(self, item_type, location_chain=()):
        """Listing prefix for all items of a type, optionally below ancestors."""
        parts = [self.base_path]
        for loc in location_chain or ():
            parts.extend((loc.type, loc.id))
        parts.append(item_type)
        return _join(*parts) + "/"

    def is_item_path(self, path):
        return not self.use_json_extension or path.endswith(JSON_EXTENSION)

    def matches(self, path, item_type, location_types=()):
        """Whether path is an item of this schema as laid out by encode.

        The check is positional, so attachments and items of nested types
        never match, whatever their ids or the files directory are called.
        """
        if not self.is_item_path(path):
            return False
        if self.base_path:
            if not path.startswith(self.base_path + "/"):
                return False
            path = path[len(self.base_path) + 1 :]
        parts = path.split("/")
        depth = len(location_types)
        if len(parts) < 2 * depth + 2:
            return False
        for index, location_type in enumerate(location_types):
            if parts[2 * index] != location_type:
                return False
        if parts[2 * depth] != item_type:
            return False
        rest = parts[2 * depth + 1 :]
        shards = self.shards_for(self.strip_extension(rest[-1]))
        return rest[:-1] == (shards if self.sharding.enabled else [])

    def files_dir_for(self, key):
        return f"{self.strip_extension(self.encode(key))}/{self.files_directory}"

    def label_dir_for(self, key, label):
        return f"{self.files_dir_for(key)}/{label}"

    def file_path_for(self, key, label, name):
        return f"{self.label_dir_for(key, label)}/{name}"

    def parse_file_path(self, key, path):
        """Return (label, name) for an attachment path of key, or None."""
        prefix = self.files_dir_for(key) + "/"
        if not path.startswith(prefix):
            return None
        label, sep, name = path[len(prefix) :].partition("/")
        if not sep or not label or not name or "/" in name:
            return None
        return label, name

    def strip_extension(self, filename):
        if self.use_json_extension and filename.endswith(JSON_EXTENSION):
            return filename[: -len(JSON_EXTENSION)]
        return filename

    def _filename(self, id_):
        if self.use_json_extension and not id_.endswith(JSON_EXTENSION):
            return id_ + JSON_EXTENSION
        return id_
