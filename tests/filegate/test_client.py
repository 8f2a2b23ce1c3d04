import httpx
import pytest

from app.packages.filegate.client import FileGateClient
from multipart_helpers import JPEG_BYTES, PNG_BYTES


@pytest.fixture()
def gate(client):
    # TestClient 本身就是 httpx.Client，直接注入
    return FileGateClient("http://testserver", http_client=client)


def test_upload_and_download(gate, tmp_path):
    source = tmp_path / "photo.png"
    source.write_bytes(PNG_BYTES)

    address = gate.upload_file(source, user_id=7, comment="hello", is_primary=True)
    assert address.startswith("http://testserver/api/files/1/")

    target = gate.download_file(address, tmp_path / "copy.png")
    assert target.read_bytes() == PNG_BYTES


def test_missing_source_file(gate, tmp_path):
    with pytest.raises(FileNotFoundError):
        gate.upload_file(tmp_path / "missing.png")
    with pytest.raises(ValueError):
        gate.upload_file("  ")


def test_rejected_upload_raises(gate, tmp_path):
    source = tmp_path / "photo.gif"
    source.write_bytes(JPEG_BYTES)
    with pytest.raises(httpx.HTTPStatusError) as exc_info:
        gate.upload_file(source)
    assert exc_info.value.response.status_code == 400


def test_download_of_unknown_file_raises(gate, tmp_path):
    with pytest.raises(httpx.HTTPStatusError):
        gate.download_file("http://testserver/api/files/1/doesNotExist", tmp_path / "out.png")
    with pytest.raises(ValueError):
        gate.download_file("", tmp_path / "out.png")
