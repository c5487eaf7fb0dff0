"""End-to-end: posts with nested comments and attachments on a mocked bucket."""

import boto3
import pytest
from moto import mock_aws

from s3_docstore import CompositeKey
from s3_docstore import DocumentStore
from s3_docstore import KeySharding
from s3_docstore import Options
from s3_docstore import SimpleKey
from s3_docstore.config import store_from_string
from s3_docstore.s3client import S3Client


@pytest.fixture
def s3_env():
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(
            Bucket="test-bucket"
        )
        yield


@pytest.fixture
def s3_client(s3_env):
    return S3Client(bucket_name="test-bucket", region_name="us-east-1")


@pytest.fixture
def posts(s3_client):
    return DocumentStore(s3_client, "post", options=Options(base_path="blog"))


@pytest.fixture
def comments(s3_client):
    return DocumentStore(
        s3_client, "comment", location_types=("post",), options=Options(base_path="blog")
    )


class TestBlog:
    def test_posts_and_comments(self, posts, comments, s3_client):
        for number in range(1, 4):
            posts.create(
                {"title": f"Post {number}", "published": number != 2},
                key=SimpleKey("post", f"p{number}"),
            )
        for post_id, text in [("p1", "first"), ("p1", "second"), ("p3", "third")]:
            comments.create({"text": text}, location_chain=[("post", post_id)])

        published = posts.list_all(
            {"filter": {"published": True}, "sort": [{"field": "title"}]}
        )
        assert [post["title"] for post in published.items] == ["Post 1", "Post 3"]

        on_first = comments.list_all(location_chain=[("post", "p1")])
        assert sorted(c["text"] for c in on_first.items) == ["first", "second"]
        assert comments.list_all().metadata.total == 3

        keys = [
            o["Key"]
            for o in boto3.client("s3", region_name="us-east-1").list_objects_v2(
                Bucket="test-bucket", Prefix="blog/post/p1/comment/"
            )["Contents"]
        ]
        assert len(keys) == 2
        assert all(k.endswith(".json") for k in keys)

    def test_post_lifecycle_with_attachments(self, posts):
        key = SimpleKey("post", "p1")
        posts.create({"title": "Draft", "meta": {"words": 10}}, key=key)
        posts.update(key, {"meta": {"tags": ["s3"]}})
        cover = posts.upload_file(key, "cover", "cover.png", b"\x89PNG", content_type="image/png")
        posts.upload_file(key, "docs", "notes.txt", b"notes", content_type="text/plain")

        doc = posts.get(key)
        assert doc["meta"] == {"words": 10, "tags": ["s3"]}
        assert doc["files"]["cover"] == [cover.to_dict()]
        assert sorted(f.name for f in posts.list_files(key)) == ["cover.png", "notes.txt"]

        # attachments never show up as items
        assert [item["id"] for item in posts.list_all().items] == ["p1"]

        assert posts.download_file(key, "docs", "notes.txt") == b"notes"
        assert posts.delete_file(key, "docs", "notes.txt") is None
        assert set(posts.get(key)["files"]) == {"cover"}

        removed = posts.remove(key)
        assert removed["title"] == "Draft"
        assert posts.get(key) is None

    def test_comment_attachments(self, comments):
        key = CompositeKey("comment", "c1", [("post", "p1")])
        comments.create({"text": "see attached"}, key=key)
        comments.upload_file(key, "images", "a.jpg", b"jpg", content_type="image/jpeg")
        assert comments.list_all(location_chain=[("post", "p1")]).metadata.total == 1
        [reference] = comments.list_files(key, "images")
        assert reference.content_type == "image/jpeg"

    def test_sharded_store(self, s3_client):
        store = DocumentStore(
            s3_client, "user", options=Options(key_sharding=KeySharding(enabled=True))
        )
        for user_id in ("alice", "bob", "carol"):
            store.upsert(SimpleKey("user", user_id), {"name": user_id.title()})
        assert s3_client.exists("user/a/al/alice.json")
        assert store.find_one({"filter": {"name": "Bob"}})["id"] == "bob"
        assert store.list_all().metadata.total == 3


class TestConfigured:
    def test_store_from_config(self, s3_env):
        store = store_from_string(
            """\
            <docstore>
                bucket-name test-bucket
                item-type post
                s3-region us-east-1
                <files>
                    allowed-content-type image/*
                </files>
            </docstore>
            """
        )
        key = SimpleKey("post", "p1")
        store.create({"title": "t"}, key=key)
        store.upload_file(key, "cover", "a.png", b"png", content_type="image/png")
        assert store.get(key)["files"]["cover"][0]["name"] == "a.png"
