from botocore.config import Config
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from s3_docstore.errors import translate_error
from s3_docstore.errors import ValidationError
from s3_docstore.interfaces import IBlobClient
from s3_docstore.options import validate_bucket_name
from urllib.parse import quote
from urllib.parse import unquote
from zope.interface import implementer

import boto3
import logging


logger = logging.getLogger(__name__)

_SIGNED_URL_METHODS = {
    "read": "get_object",
    "write": "put_object",
    "delete": "delete_object",
}


@implementer(IBlobClient)
class S3Client:
    """Thin boto3 wrapper for S3-compatible object storage."""

    def __init__(
        self,
        bucket_name,
        endpoint_url=None,
        region_name=None,
        aws_access_key_id=None,
        aws_secret_access_key=None,
        use_ssl=True,
        addressing_style="auto",
        connect_timeout=60,
        read_timeout=60,
    ):
        validate_bucket_name(bucket_name)
        self.bucket_name = bucket_name

        config = Config(
            s3={"addressing_style": addressing_style},
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
        )

        kwargs = {"config": config}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if region_name:
            kwargs["region_name"] = region_name
        if aws_access_key_id:
            kwargs["aws_access_key_id"] = aws_access_key_id
        if aws_secret_access_key:
            kwargs["aws_secret_access_key"] = aws_secret_access_key
        kwargs["use_ssl"] = use_ssl
        if not use_ssl:
            logger.warning(
                "S3 SSL is disabled — data and credentials are transmitted in cleartext"
            )

        self._client = boto3.client("s3", **kwargs)

    def exists(self, path):
        return self.head_object(path) is not None

    def upload(self, path, data, content_type, metadata=None, content_md5=None):
        kwargs = {
            "Bucket": self.bucket_name,
            "Key": path,
            "Body": data,
            "ContentType": content_type,
        }
        if metadata:
            # S3 metadata must be ASCII
            kwargs["Metadata"] = {
                str(k): quote(str(v), safe="") for k, v in metadata.items()
            }
        if content_md5:
            kwargs["ContentMD5"] = content_md5
        try:
            self._client.put_object(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "upload", path) from e

    def download(self, path):
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=path)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "download", path) from e

    def delete(self, path):
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=path)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "delete", path) from e

    def head_object(self, path):
        try:
            response = self._client.head_object(Bucket=self.bucket_name, Key=path)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return None
            raise translate_error(e, "head", path) from e
        except BotoCoreError as e:
            raise translate_error(e, "head", path) from e
        return {
            "name": path,
            "size": response.get("ContentLength", 0),
            "content_type": response.get("ContentType"),
            "created_at": response.get("LastModified"),
            "checksum": _etag(response.get("ETag")),
            "metadata": {
                k: unquote(v) for k, v in (response.get("Metadata") or {}).items()
            },
        }

    def list_objects(self, prefix=""):
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield {
                        "name": obj["Key"],
                        "size": obj.get("Size", 0),
                        "created_at": obj.get("LastModified"),
                        "checksum": _etag(obj.get("ETag")),
                    }
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "list", prefix) from e

    def signed_url(
        self, path, action, ttl, response_content_type=None, content_disposition=None
    ):
        method = _SIGNED_URL_METHODS.get(action)
        if method is None:
            raise ValidationError(
                f"Invalid signed URL action {action!r}, "
                f"expected one of {', '.join(_SIGNED_URL_METHODS)}"
            )
        params = {"Bucket": self.bucket_name, "Key": path}
        if action == "read":
            if response_content_type:
                params["ResponseContentType"] = response_content_type
            if content_disposition:
                params["ResponseContentDisposition"] = content_disposition
        try:
            return self._client.generate_presigned_url(
                method, Params=params, ExpiresIn=ttl
            )
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "sign", path) from e


def _etag(value):
    return value.strip('"') if value else None
