import io
import zipfile

import pytest

from fbconv.bookdetect import (
    SourceEncoding,
    detect_utf,
    is_archive_file,
    is_book_file,
    is_book_in_archive,
    select_reader,
)

BOOK = '<?xml version="1.0" encoding="utf-8"?>\n<FictionBook xmlns="urn:example"><body/></FictionBook>'


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"\x00\x00\xfe\xff", SourceEncoding.UTF32_BE),
        (b"\xff\xfe\x00\x00", SourceEncoding.UTF32_LE),
        (b"\xef\xbb\xbf<", SourceEncoding.UTF8),
        (b"\xfe\xff\x00<", SourceEncoding.UTF16_BE),
        (b"\xff\xfe<\x00", SourceEncoding.UTF16_LE),
        (b"<?xm", SourceEncoding.UNKNOWN),
        (b"\xff\xfe", SourceEncoding.UTF16_LE),
    ],
)
def test_detect_utf(data, expected):
    assert detect_utf(data) is expected


def test_select_reader_unknown_returns_stream():
    stream = io.BytesIO(b"abc")
    assert select_reader(stream, SourceEncoding.UNKNOWN) is stream


@pytest.mark.parametrize(
    "raw, encoding",
    [
        (b"\xef\xbb\xbf" + BOOK.encode("utf-8"), SourceEncoding.UTF8),
        (b"\xfe\xff" + BOOK.encode("utf-16-be"), SourceEncoding.UTF16_BE),
        (b"\xff\xfe" + BOOK.encode("utf-16-le"), SourceEncoding.UTF16_LE),
        (b"\x00\x00\xfe\xff" + BOOK.encode("utf-32-be"), SourceEncoding.UTF32_BE),
        (b"\xff\xfe\x00\x00" + BOOK.encode("utf-32-le"), SourceEncoding.UTF32_LE),
    ],
)
def test_select_reader_transcodes_to_utf8(raw, encoding):
    assert select_reader(io.BytesIO(raw), encoding).read() == BOOK.encode("utf-8")


@pytest.mark.parametrize(
    "raw, encoding",
    [
        (BOOK.encode("utf-8"), SourceEncoding.UNKNOWN),
        (b"\xef\xbb\xbf" + BOOK.encode("utf-8"), SourceEncoding.UTF8),
        (b"\xff\xfe" + BOOK.encode("utf-16-le"), SourceEncoding.UTF16_LE),
        (b"\x00\x00\xfe\xff" + BOOK.encode("utf-32-be"), SourceEncoding.UTF32_BE),
    ],
)
def test_is_book_file(tmp_path, raw, encoding):
    path = tmp_path / "book.FB2"
    path.write_bytes(raw)
    assert is_book_file(path) == (True, encoding)


def test_is_book_file_wrong_extension(tmp_path):
    path = tmp_path / "book.xml"
    path.write_text(BOOK)
    assert is_book_file(path) == (False, SourceEncoding.UNKNOWN)


def test_is_book_file_not_fictionbook(tmp_path):
    path = tmp_path / "book.fb2"
    path.write_text('<?xml version="1.0"?><html/>')
    assert is_book_file(path) == (False, SourceEncoding.UNKNOWN)


def test_is_book_file_empty(tmp_path):
    path = tmp_path / "book.fb2"
    path.write_bytes(b"")
    with pytest.raises(EOFError):
        is_book_file(path)


def test_is_archive_file(tmp_path):
    path = tmp_path / "books.ZIP"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("book.fb2", "a" * 400)
    assert is_archive_file(path) is True


def test_is_archive_file_small_archive(tmp_path):
    path = tmp_path / "tiny.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("a", "")
    assert path.stat().st_size < 262
    assert is_archive_file(path) is False


def test_is_archive_file_not_zip(tmp_path):
    path = tmp_path / "fake.zip"
    path.write_text("x" * 300)
    assert is_archive_file(path) is False
    other = tmp_path / "books.tar"
    other.write_text("x" * 300)
    assert is_archive_file(other) is False


def test_is_archive_file_errors(tmp_path):
    empty = tmp_path / "empty.zip"
    empty.write_bytes(b"")
    with pytest.raises(EOFError):
        is_archive_file(empty)
    with pytest.raises(FileNotFoundError):
        is_archive_file(tmp_path / "missing.zip")


def test_is_book_in_archive(tmp_path):
    path = tmp_path / "books.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("dir/book.fb2", b"\xff\xfe" + BOOK.encode("utf-16-le"))
        zf.writestr("dir/plain.fb2", BOOK)
        zf.writestr("dir/notes.txt", BOOK)
        zf.writestr("dir/page.fb2", "<?xml version='1.0'?><html/>")
    with zipfile.ZipFile(path) as zf:
        assert is_book_in_archive(zf, zf.getinfo("dir/book.fb2")) == (
            True,
            SourceEncoding.UTF16_LE,
        )
        assert is_book_in_archive(zf, "dir/plain.fb2") == (True, SourceEncoding.UNKNOWN)
        assert is_book_in_archive(zf, "dir/notes.txt") == (False, SourceEncoding.UNKNOWN)
        assert is_book_in_archive(zf, "dir/page.fb2") == (False, SourceEncoding.UNKNOWN)