from s3_docstore.errors import ValidationError
from s3_docstore.keys import CompositeKey
from s3_docstore.keys import key_from_document
from s3_docstore.keys import LocKey
from s3_docstore.keys import make_key
from s3_docstore.keys import SimpleKey
from s3_docstore.options import FileOptions
from s3_docstore.options import KeySharding
from s3_docstore.options import Options
from s3_docstore.paths import PathBuilder
from s3_docstore.paths import shard_segments

import pytest


def _builder(**kwargs):
    return PathBuilder(Options(**kwargs))


POST = SimpleKey("post", "abc123")
COMMENT = CompositeKey("comment", "c-9", (LocKey("post", "abc123"),))


class TestKeys:
    @pytest.mark.parametrize("bad", ["a/b", "a\\b", "a\0b", "a\rb", "a\nb", ""])
    def test_invalid_ids(self, bad):
        with pytest.raises(ValidationError):
            SimpleKey("post", bad)

    def test_type_required(self):
        with pytest.raises(ValidationError):
            SimpleKey("", "1")

    def test_composite_needs_chain(self):
        with pytest.raises(ValidationError):
            CompositeKey("comment", "1", ())

    def test_chain_accepts_mappings_and_pairs(self):
        key = CompositeKey(
            "reply", "r1", [{"type": "user", "id": "u1"}, ("post", "p1")]
        )
        assert key.location_chain == (LocKey("user", "u1"), LocKey("post", "p1"))

    def test_keys_are_hashable_values(self):
        assert COMMENT == CompositeKey("comment", "c-9", [("post", "abc123")])
        assert len({POST, SimpleKey("post", "abc123")}) == 1

    def test_identity(self):
        assert COMMENT.identity() == {
            "type": "comment",
            "id": "c-9",
            "location_chain": [{"type": "post", "id": "abc123"}],
        }

    def test_key_from_document(self):
        assert key_from_document(COMMENT.identity()) == COMMENT
        assert key_from_document({"type": "post", "id": "abc123"}) == POST

    def test_make_key(self):
        assert make_key("post", "abc123") == POST
        assert isinstance(make_key("comment", "c-9", [("post", "x")]), CompositeKey)


class TestShardSegments:
    def test_two_levels_one_char(self):
        assert shard_segments("abc123", 2, 1) == ["a", "ab"]

    def test_short_id_is_truncated(self):
        assert shard_segments("ab", 3, 2) == ["ab"]

    def test_lower_cased(self):
        assert shard_segments("XYZ", 2, 1) == ["x", "xy"]

    def test_too_short_for_any_level(self):
        assert shard_segments("a", 2, 2) == []


class TestEncode:
    def test_simple_key(self):
        assert _builder().encode(POST) == "post/abc123.json"

    def test_base_path(self):
        assert _builder(base_path="data/v1/").encode(POST) == "data/v1/post/abc123.json"

    def test_without_extension(self):
        assert _builder(use_json_extension=False).encode(POST) == "post/abc123"

    def test_extension_not_doubled(self):
        assert _builder().encode(SimpleKey("post", "x.json")) == "post/x.json"

    def test_composite_key(self):
        assert _builder().encode(COMMENT) == "post/abc123/comment/c-9.json"

    def test_nested_composite_key(self):
        key = CompositeKey("reply", "r1", [("user", "u1"), ("post", "p1")])
        assert _builder(base_path="b").encode(key) == "b/user/u1/post/p1/reply/r1.json"

    def test_sharded(self):
        builder = _builder(key_sharding=KeySharding(enabled=True))
        assert builder.encode(POST) == "post/a/ab/abc123.json"
        assert builder.encode(COMMENT) == "post/abc123/comment/c/c-/c-9.json"

    def test_deterministic(self):
        builder = _builder(key_sharding=KeySharding(enabled=True, levels=3))
        assert builder.encode(POST) == builder.encode(SimpleKey("post", "abc123"))


class TestDecode:
    def test_simple(self):
        assert _builder().decode("post/abc123.json") == POST

    def test_base_path(self):
        builder = _builder(base_path="data")
        assert builder.decode("data/post/abc123.json") == POST
        assert builder.decode("other/post/abc123.json") is None

    def test_sharded(self):
        builder = _builder(key_sharding=KeySharding(enabled=True))
        assert builder.decode(builder.encode(POST)) == POST

    def test_sharded_short_id(self):
        builder = _builder(key_sharding=KeySharding(enabled=True, levels=3))
        key = SimpleKey("post", "ab")
        assert builder.decode(builder.encode(key)) == key

    def test_composite_recovers_innermost_pair_only(self):
        assert _builder().decode("post/abc123/comment/c-9.json") == SimpleKey(
            "comment", "c-9"
        )

    @pytest.mark.parametrize("path", ["", "abc123.json", "/"])
    def test_malformed(self, path):
        assert _builder().decode(path) is None


class TestFilePaths:
    def test_files_dir(self):
        assert _builder().files_dir_for(POST) == "post/abc123/_files"

    def test_label_dir(self):
        assert _builder().label_dir_for(COMMENT, "master") == (
            "post/abc123/comment/c-9/_files/master"
        )

    def test_file_path_custom_directory(self):
        builder = _builder(files=FileOptions(directory="attachments"))
        assert builder.file_path_for(POST, "cover", "0.jpg") == (
            "post/abc123/attachments/cover/0.jpg"
        )

    def test_parse_file_path(self):
        builder = _builder()
        path = builder.file_path_for(COMMENT, "master", "0.wav")
        assert builder.parse_file_path(COMMENT, path) == ("master", "0.wav")
        assert builder.parse_file_path(POST, "post/abc123.json") is None
        assert builder.parse_file_path(POST, "post/abc123/_files/master") is None
        assert builder.parse_file_path(POST, path) is None

    def test_parse_file_path_with_files_named_ancestor(self):
        builder = _builder()
        key = CompositeKey("rec", "r1", (LocKey("user", "_files"),))
        path = builder.file_path_for(key, "_files", "a.wav")
        assert path == "user/_files/rec/r1/_files/_files/a.wav"
        assert builder.parse_file_path(key, path) == ("_files", "a.wav")


class TestMatches:
    def test_simple_schema(self):
        builder = _builder()
        assert builder.matches("post/abc123.json", "post")
        assert not builder.matches("post/abc123/comment/c-9.json", "post")
        assert not builder.matches("post/abc123/_files/data/x.json", "post")
        assert not builder.matches("post/abc123.txt", "post")

    def test_contained_schema(self):
        builder = _builder()
        assert builder.matches("post/abc123/comment/c-9.json", "comment", ("post",))
        assert not builder.matches("post/abc123.json", "comment", ("post",))

    def test_ids_named_like_files_directory(self):
        builder = _builder()
        assert builder.matches("user/_files/rec/r1.json", "rec", ("user",))
        assert builder.matches("post/_files.json", "post")
        assert not builder.matches("user/_files/rec/r1/_files/l/a.json", "rec", ("user",))

    def test_sharded_schema(self):
        builder = _builder(key_sharding=KeySharding(enabled=True))
        assert builder.matches("post/a/ab/abc123.json", "post")
        assert not builder.matches("post/abc123.json", "post")

    def test_list_prefix(self):
        builder = _builder(base_path="data")
        assert builder.list_prefix("post") == "data/post/"
        assert builder.list_prefix("comment", (LocKey("post", "p1"),)) == (
            "data/post/p1/comment/"
        )
