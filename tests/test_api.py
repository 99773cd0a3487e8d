import gzip
import zlib

import brotli
import pytest
import zstandard
from fastapi.testclient import TestClient

from streamprobe.app import create_app
from streamprobe.config import Settings
from streamprobe.core import compressor

from conftest import CHUNK_COUNT, CHUNK_SIZE, IMAGE_SIZE

DECODERS = {
    "gzip": ("gzip", gzip.decompress),
    "deflate": ("deflate", zlib.decompress),
    "brotli": ("br", brotli.decompress),
    "zstd": ("zstd", lambda data: zstandard.ZstdDecompressor().decompressobj().decompress(data)),
}


def _raw(client, url):
    with client.stream("GET", url) as response:
        return response, b"".join(response.iter_raw())


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["stream"]["chunk_count"] == CHUNK_COUNT
    assert data["stream"]["chunk_size"] == CHUNK_SIZE
    assert set(data["encodings"]) == {"none", "gzip", "deflate", "brotli", "zstd"}


def test_default_format_is_uncompressed(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert "content-encoding" not in r.headers
    assert len(r.content) == CHUNK_COUNT * CHUNK_SIZE


def test_empty_format_is_uncompressed(client):
    r = client.get("/?format=")
    assert r.status_code == 200
    assert "content-encoding" not in r.headers
    assert len(r.content) == CHUNK_COUNT * CHUNK_SIZE


def test_none_streams_every_chunk(client):
    r = client.get("/?format=none")
    body = r.content

    assert len(body) == CHUNK_COUNT * CHUNK_SIZE
    assert body.startswith(b"--- Chunk 1 at ")
    for index in range(1, CHUNK_COUNT + 1):
        assert b"--- Chunk %d at " % index in body
    assert r.headers["cache-control"] == "no-cache"
    assert r.headers["x-accel-buffering"] == "no"


@pytest.mark.parametrize("fmt", list(DECODERS))
def test_compressed_formats_set_encoding(client, fmt):
    token, decode = DECODERS[fmt]
    response, raw = _raw(client, f"/?format={fmt}")

    assert response.status_code == 200
    assert response.headers["content-encoding"] == token
    assert "content-length" not in response.headers
    assert len(decode(raw)) == CHUNK_COUNT * CHUNK_SIZE


def test_flush_can_be_disabled_per_request(client):
    response, raw = _raw(client, "/?format=gzip&flush=false")
    assert response.status_code == 200
    assert len(gzip.decompress(raw)) == CHUNK_COUNT * CHUNK_SIZE


@pytest.mark.parametrize("fmt", ["xyz", "br", "GZIP", "%20none"])
def test_unknown_format_is_rejected(client, fmt):
    r = client.get(f"/?format={fmt}")
    assert r.status_code == 400
    assert r.text == "Unknown format"


def test_unsupported_codec_fails_instead_of_identity(client, monkeypatch):
    monkeypatch.setattr(compressor, "brotli", None)

    r = client.get("/?format=brotli")
    assert r.status_code == 501
    assert r.json() == {"success": False, "error": "Unsupported encoding: br"}
    assert "content-encoding" not in r.headers


def test_image_route_slices_resource(client, image_file):
    r = client.get("/image?format=none")
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.content == image_file.read_bytes()
    assert len(r.content) == IMAGE_SIZE


def test_image_route_compressed(client, image_file):
    response, raw = _raw(client, "/image?format=deflate")
    assert response.headers["content-encoding"] == "deflate"
    assert zlib.decompress(raw) == image_file.read_bytes()


def test_image_unknown_format(client):
    r = client.get("/image?format=lzma")
    assert r.status_code == 400
    assert r.text == "Unknown format"


def test_missing_image_is_setup_error(tmp_path):
    cfg = Settings(CHUNK_DELAY_MS=0, IMAGE_PATH=str(tmp_path / "gone.png"))
    with TestClient(create_app(cfg)) as c:
        r = c.get("/image?format=gzip")

    assert r.status_code == 500
    data = r.json()
    assert data["success"] is False
    assert "gone.png" in data["error"]


def test_unconfigured_image_is_setup_error():
    with TestClient(create_app(Settings(CHUNK_DELAY_MS=0, IMAGE_PATH=""))) as c:
        r = c.get("/image")

    assert r.status_code == 500
    assert r.json()["error"] == "IMAGE_PATH is not configured"
