"""
Shared fixtures for reddit_images tests.
"""
import struct
import pytest

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def png_chunk(chunk_type: bytes, data: bytes = b"") -> bytes:
    """Build a PNG chunk with a dummy CRC."""
    return struct.pack(">I", len(data)) + chunk_type + data + b"\x00\x00\x00\x00"


@pytest.fixture
def png_bytes():
    """Minimal static PNG."""
    return PNG_SIGNATURE + png_chunk(b"IHDR", b"\x00" * 13) + png_chunk(b"IDAT", b"\x00" * 4) + png_chunk(b"IEND")


@pytest.fixture
def apng_bytes():
    """Minimal animated PNG (acTL before IDAT)."""
    return (
        PNG_SIGNATURE
        + png_chunk(b"IHDR", b"\x00" * 13)
        + png_chunk(b"acTL", b"\x00" * 8)
        + png_chunk(b"IDAT", b"\x00" * 4)
        + png_chunk(b"IEND")
    )


@pytest.fixture
def gif_bytes():
    return b"GIF89a" + b"\x01\x00\x01\x00" + b"\x00" * 20


@pytest.fixture
def jpeg_bytes():
    return b"\xff\xd8\xff\xe0" + b"\x00\x10JFIF\x00" + b"\x00" * 20


def listing_child(**data):
    """Wrap post data the way Reddit's listing does."""
    return {"kind": "t3", "data": data}


def listing_body(*children, after=None):
    return {"kind": "Listing", "data": {"after": after, "children": list(children)}}


@pytest.fixture
def make_listing():
    """Factory building a listing JSON object from post data dicts."""
    def _make(*posts, after=None):
        return listing_body(*(listing_child(**post) for post in posts), after=after)
    return _make


@pytest.fixture
def cats_listing_json():
    """Listing for r/cats with one imgur post and one from another domain."""
    return listing_body(
        listing_child(
            domain="imgur.com",
            url="https://i.imgur.com/abc123.png",
            author="catlover",
            id="p1",
            permalink="/r/cats/comments/p1/fluffy/",
            title="Fluffy",
            subreddit="cats",
        ),
        listing_child(
            domain="example.com",
            url="https://example.com/cat.jpg",
            author="someone",
            id="p2",
            permalink="/r/cats/comments/p2/other/",
            title="Other",
            subreddit="cats",
        ),
        after="t3_p2",
    )
