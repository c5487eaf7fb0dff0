from s3_docstore.options import FileOptions
from s3_docstore.options import KeySharding
from s3_docstore.options import Options
from s3_docstore.options import QuerySafety

import io
import os
import ZConfig


_schema = None


def get_schema():
    global _schema
    if _schema is None:
        _schema = ZConfig.loadSchema(
            os.path.join(os.path.dirname(__file__), "schema.xml")
        )
    return _schema


def store_from_string(text, logger=None):
    config, _handler = ZConfig.loadConfigFile(get_schema(), io.StringIO(text))
    return config.docstore.open(logger=logger)


def store_from_file(path, logger=None):
    config, _handler = ZConfig.loadConfig(get_schema(), path)
    return config.docstore.open(logger=logger)


class DocumentStoreFactory:
    """ZConfig factory for DocumentStore."""

    def __init__(self, config):
        self.config = config
        self.name = config.getSectionName()

    def options(self):
        config = self.config
        options = Options(
            base_path=config.base_path or "",
            use_json_extension=config.use_json_extension,
            mode=config.mode,
        )
        if config.key_sharding is not None:
            section = config.key_sharding
            options.key_sharding = KeySharding(
                enabled=section.enabled,
                levels=section.levels,
                chars_per_level=section.chars_per_level,
            )
        if config.query_safety is not None:
            section = config.query_safety
            options.query_safety = QuerySafety(
                max_scan_files=section.max_scan_files,
                warn_threshold=section.warn_threshold,
                disable_query_operations=section.disable_query_operations,
                download_concurrency=section.download_concurrency,
            )
        if config.files is not None:
            section = config.files
            options.files = FileOptions(
                directory=section.directory,
                max_file_size=section.max_file_size,
                allowed_content_types=list(section.allowed_content_types or []),
                include_metadata_in_item=section.include_metadata_in_item,
                compute_checksums=section.compute_checksums,
            )
        return options

    def open(self, logger=None):
        from s3_docstore.s3client import S3Client
        from s3_docstore.store import DocumentStore

        config = self.config
        s3_client = S3Client(
            bucket_name=config.bucket_name,
            endpoint_url=config.s3_endpoint_url,
            region_name=config.s3_region,
            aws_access_key_id=config.s3_access_key,
            aws_secret_access_key=config.s3_secret_key,
            use_ssl=config.s3_use_ssl,
            addressing_style=config.s3_addressing_style,
            connect_timeout=config.s3_connect_timeout,
            read_timeout=config.s3_read_timeout,
        )
        return DocumentStore(
            s3_client,
            config.item_type,
            location_types=tuple(config.location_types or ()),
            directory_paths=list(config.directory_paths or ()) or None,
            options=self.options(),
            logger=logger,
        )
