import asyncio
import gzip
import zlib

import brotli
import pytest
import zstandard

from streamprobe.core import compressor
from streamprobe.core.compressor import available_encodings, create_codec, wrap
from streamprobe.core.pacer import SyntheticPacer
from streamprobe.models.stream import CompressionMode
from streamprobe.utils.exceptions import UnsupportedEncodingError

CHUNKS = [b"--- chunk %d ---\n" % i + b"x" * 4000 + b"\n" for i in range(1, 6)]

DECOMPRESSORS = {
    CompressionMode.GZIP: gzip.decompress,
    CompressionMode.DEFLATE: zlib.decompress,
    CompressionMode.BROTLI: brotli.decompress,
    CompressionMode.ZSTD: lambda data: zstandard.ZstdDecompressor().decompressobj().decompress(data),
}


async def _source():
    for chunk in CHUNKS:
        yield chunk


def _collect(stream):
    async def run():
        return [out async for out in stream]

    return asyncio.run(run())


def test_none_is_identity():
    assert _collect(wrap(_source(), CompressionMode.NONE)) == CHUNKS


@pytest.mark.parametrize("mode", list(DECOMPRESSORS))
def test_flushed_codec_emits_per_input_chunk(mode):
    outputs = _collect(wrap(_source(), mode, flush=True))

    # one output per input chunk, plus the stream trailer
    assert len(outputs) >= len(CHUNKS)
    assert all(outputs)
    assert DECOMPRESSORS[mode](b"".join(outputs)) == b"".join(CHUNKS)


@pytest.mark.parametrize("mode", list(DECOMPRESSORS))
def test_each_flushed_prefix_is_decodable(mode):
    # what a client has after the first chunk must already decode to it
    codec = create_codec(mode)
    first = codec.compress(CHUNKS[0]) + codec.flush()

    if mode is CompressionMode.GZIP:
        decoded = zlib.decompressobj(31).decompress(first)
    elif mode is CompressionMode.DEFLATE:
        decoded = zlib.decompressobj().decompress(first)
    elif mode is CompressionMode.BROTLI:
        decoded = brotli.Decompressor().process(first)
    else:
        decoded = zstandard.ZstdDecompressor().decompressobj().decompress(first)
    assert decoded == CHUNKS[0]


def test_unflushed_brotli_holds_everything_until_finish():
    outputs = _collect(wrap(_source(), CompressionMode.BROTLI, flush=False))

    assert len(outputs) == 1
    assert brotli.decompress(outputs[0]) == b"".join(CHUNKS)


@pytest.mark.parametrize("mode", [CompressionMode.GZIP, CompressionMode.DEFLATE])
def test_unflushed_output_still_decodes(mode):
    outputs = _collect(wrap(_source(), mode, flush=False))
    assert DECOMPRESSORS[mode](b"".join(outputs)) == b"".join(CHUNKS)


def test_wraps_pacer_directly():
    pacer = SyntheticPacer(count=3, chunk_size=512, delay=0)
    outputs = _collect(wrap(pacer, CompressionMode.GZIP))
    assert len(gzip.decompress(b"".join(outputs))) == 3 * 512


def test_content_encoding_tokens():
    assert CompressionMode.NONE.content_encoding is None
    assert CompressionMode.GZIP.content_encoding == "gzip"
    assert CompressionMode.DEFLATE.content_encoding == "deflate"
    assert CompressionMode.BROTLI.content_encoding == "br"
    assert CompressionMode.ZSTD.content_encoding == "zstd"


def test_parse_format_tokens():
    assert CompressionMode.parse(None) is CompressionMode.NONE
    assert CompressionMode.parse("") is CompressionMode.NONE
    assert CompressionMode.parse("gzip") is CompressionMode.GZIP
    assert CompressionMode.parse("xyz") is None
    assert CompressionMode.parse("GZIP") is None
    assert CompressionMode.parse(" none") is None


def test_missing_library_fails_fast(monkeypatch):
    monkeypatch.setattr(compressor, "zstandard", None)

    assert available_encodings()["zstd"] is False
    with pytest.raises(UnsupportedEncodingError) as exc:
        wrap(_source(), CompressionMode.ZSTD)
    assert exc.value.status_code == 501
    assert "zstd" in exc.value.message


def test_all_codecs_available():
    assert available_encodings() == {
        "none": True,
        "gzip": True,
        "deflate": True,
        "brotli": True,
        "zstd": True,
    }
