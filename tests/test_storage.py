import io

import boto3
from botocore.response import StreamingBody
from botocore.stub import Stubber
import pytest

from model_translation.core.exceptions import StorageError
from model_translation.core.storage import (
    Disk,
    LocalDisk,
    MemoryDisk,
    S3Disk,
    create_disk,
)


class TestLocalDisk:
    def test_write_then_read(self, tmp_path):
        disk = LocalDisk(tmp_path)
        disk.write("app-models-article/1/en.json", b'{"title": "Hello"}')

        assert disk.read("app-models-article/1/en.json") == b'{"title": "Hello"}'
        assert disk.exists("app-models-article/1/en.json")

    def test_read_missing_returns_none(self, tmp_path):
        assert LocalDisk(tmp_path).read("nope/1/en.json") is None

    def test_list_and_list_dirs_are_not_recursive(self, tmp_path):
        disk = LocalDisk(tmp_path)
        disk.write("a/1/en.json", b"{}")
        disk.write("a/1/fr.json", b"{}")
        disk.write("a/2/en.json", b"{}")
        disk.write("meta/en.json", b"{}")

        assert disk.list_keys("a/1") == ["a/1/en.json", "a/1/fr.json"]
        assert disk.list_keys("a") == []
        assert disk.list_dirs("a") == ["a/1", "a/2"]
        assert disk.list_dirs("") == ["a", "meta"]

    def test_delete_prunes_empty_directories(self, tmp_path):
        disk = LocalDisk(tmp_path)
        disk.write("a/1/en.json", b"{}")

        assert disk.delete("a/1/en.json") is True
        assert disk.delete("a/1/en.json") is False
        assert not (tmp_path / "a").exists()
        assert tmp_path.exists()

    def test_delete_prefix(self, tmp_path):
        disk = LocalDisk(tmp_path)
        disk.write("a/1/en.json", b"{}")
        disk.write("a/1/fr.json", b"{}")
        disk.write("a/2/en.json", b"{}")

        assert disk.delete_prefix("a/1") is True
        assert disk.delete_prefix("a/1") is False
        assert disk.list_dirs("a") == ["a/2"]

    def test_keys_cannot_escape_root(self, tmp_path):
        disk = LocalDisk(tmp_path / "root")
        with pytest.raises(StorageError):
            disk.write("../outside.json", b"{}")

    def test_write_leaves_no_temp_files(self, tmp_path):
        disk = LocalDisk(tmp_path)
        disk.write("a/1/en.json", b"{}")
        disk.write("a/1/en.json", b'{"x": "y"}')

        assert sorted(p.name for p in (tmp_path / "a" / "1").iterdir()) == ["en.json"]


class TestMemoryDisk:
    def test_listing(self):
        disk = MemoryDisk()
        disk.write("a/1/en.json", b"{}")
        disk.write("a/10/en.json", b"{}")
        disk.write("meta/en.json", b"{}")

        assert disk.list_keys("meta") == ["meta/en.json"]
        assert disk.list_dirs("a") == ["a/1", "a/10"]
        assert disk.list_dirs() == ["a", "meta"]

    def test_delete_prefix_does_not_touch_siblings(self):
        disk = MemoryDisk()
        disk.write("a/1/en.json", b"{}")
        disk.write("a/10/en.json", b"{}")

        disk.delete_prefix("a/1")

        assert disk.exists("a/10/en.json")
        assert not disk.exists("a/1/en.json")


def test_create_disk_memory():
    assert isinstance(create_disk("memory"), MemoryDisk)


def test_create_disk_rejects_unknown_kind():
    with pytest.raises(ValueError):
        create_disk("ftp")


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


class TestS3Disk:
    def test_read_returns_body(self, s3_client):
        body = b'{"title": "Hello"}'
        with Stubber(s3_client) as stubber:
            stubber.add_response(
                "get_object",
                {"Body": StreamingBody(io.BytesIO(body), len(body))},
            )
            disk = S3Disk("translations", client=s3_client)

            assert disk.read("a/1/en.json") == body

    def test_read_missing_key_returns_none(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "get_object", service_error_code="NoSuchKey", http_status_code=404
            )
            disk = S3Disk("translations", client=s3_client)

            assert disk.read("a/1/en.json") is None

    def test_read_failure_raises_storage_error(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "get_object", service_error_code="AccessDenied", http_status_code=403
            )
            disk = S3Disk("translations", client=s3_client)

            with pytest.raises(StorageError):
                disk.read("a/1/en.json")

    def test_write_creates_missing_bucket_once(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "head_bucket", service_error_code="404", http_status_code=404
            )
            stubber.add_response("create_bucket", {}, {"Bucket": "translations"})
            stubber.add_response("put_object", {})
            stubber.add_response("put_object", {})
            disk = S3Disk("translations", client=s3_client)

            disk.write("a/1/en.json", b"{}")
            disk.write("a/1/fr.json", b"{}")

            stubber.assert_no_pending_responses()

    def test_delete_missing_key_returns_false(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "head_object", service_error_code="404", http_status_code=404
            )
            disk = S3Disk("translations", client=s3_client)

            assert disk.delete("a/1/en.json") is False

    def test_list_and_list_dirs_use_delimiter(self, s3_client):
        page = {
            "IsTruncated": False,
            "Contents": [{"Key": "a/1/fr.json"}, {"Key": "a/1/en.json"}],
            "CommonPrefixes": [],
        }
        dirs_page = {
            "IsTruncated": False,
            "CommonPrefixes": [{"Prefix": "a/2/"}, {"Prefix": "a/1/"}],
        }
        with Stubber(s3_client) as stubber:
            stubber.add_response(
                "list_objects_v2",
                page,
                {"Bucket": "translations", "Prefix": "a/1/", "Delimiter": "/"},
            )
            stubber.add_response(
                "list_objects_v2",
                dirs_page,
                {"Bucket": "translations", "Prefix": "a/", "Delimiter": "/"},
            )
            disk = S3Disk("translations", client=s3_client)

            assert disk.list_keys("a/1") == ["a/1/en.json", "a/1/fr.json"]
            assert disk.list_dirs("a") == ["a/1", "a/2"]

    def test_delete_prefix_batches_keys(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_response(
                "list_objects_v2",
                {
                    "IsTruncated": False,
                    "Contents": [{"Key": "a/1/en.json"}, {"Key": "a/1/fr.json"}],
                },
                {"Bucket": "translations", "Prefix": "a/1/"},
            )
            stubber.add_response("delete_objects", {"Deleted": [{"Key": "a/1/en.json"}]})
            disk = S3Disk("translations", client=s3_client)

            assert disk.delete_prefix("a/1") is True
            stubber.assert_no_pending_responses()


def test_disk_contract_lists_keys_without_shadowing_builtins():
    assert "list_keys" in Disk.__abstractmethods__
    assert not hasattr(Disk, "list")
    assert Disk.list_keys.__annotations__["return"] == list[str]
