"""Tests for writing and reading containers."""

import gc
import io
from concurrent.futures import ThreadPoolExecutor

import pytest

from tag_pack import (
    ContainerReader,
    ContainerWriter,
    CorruptIndex,
    DuplicateSection,
    OpenError,
    OpenMode,
    SectionNotFound,
)
from tag_pack.model import HEADER_SIZE


def write_container(path, sections, mode=OpenMode.CREATE):
    with ContainerWriter(path, mode) as writer:
        for tag, data in sections:
            writer.append_buffer(data, tag)


def read_all(path):
    with ContainerReader(path) as reader:
        return {tag: reader.read_section(tag) for tag in reader}


def assert_no_overlap(path):
    with ContainerReader(path) as reader:
        entries = sorted(reader.entries, key=lambda e: (e.offset, e.size))
    for prev, cur in zip(entries, entries[1:]):
        assert prev.end <= cur.offset


@pytest.fixture
def pack(tmp_path):
    return tmp_path / "test.pack"


class TestScenarios:
    def test_meta_empty_missing(self, pack):
        with ContainerWriter(pack) as writer:
            writer.append_buffer(bytes([0x01, 0x02, 0x03]), "meta")
            writer.append_buffer(b"", "empty")
            writer.finish()

        with ContainerReader(pack) as reader:
            assert reader.has_section("meta")
            assert reader.get_reader("meta").read() == b"\x01\x02\x03"
            assert reader.has_section("empty")
            assert reader.get_reader("empty").read() == b""
            assert not reader.has_section("missing")
            assert "meta" in reader
            assert len(reader) == 2

    def test_on_disk_layout(self, pack):
        write_container(pack, [("meta", b"\x01\x02\x03")])

        assert pack.read_bytes() == (
            (11).to_bytes(8, "little") + b"\x01\x02\x03" + b"\x01\x04meta\x08\x03"
        )

    def test_unfinished_container_cannot_be_read(self, pack):
        writer = ContainerWriter(pack)
        writer.append_buffer(b"payload", "a")
        writer.save_current_size()

        assert pack.read_bytes()[:HEADER_SIZE] == b"\x00" * HEADER_SIZE
        with pytest.raises(CorruptIndex):
            ContainerReader(pack)

        writer.finish()
        assert read_all(pack) == {b"a": b"payload"}

    def test_get_reader_missing(self, pack):
        write_container(pack, [("a", b"1")])
        with ContainerReader(pack) as reader:
            with pytest.raises(SectionNotFound) as exc:
                reader.get_reader("b")
        assert exc.value.tag == "b"


class TestRoundTrip:
    def test_many_sections(self, pack):
        sections = [(f"section-{i:03d}".encode(), bytes([i % 256]) * (i * 37)) for i in range(60)]
        sections.append((b"\x00\xff binary tag", b"\xde\xad\xbe\xef"))
        write_container(pack, sections)

        assert read_all(pack) == dict(sections)
        assert_no_overlap(pack)

        with ContainerReader(pack) as reader:
            for tag, _ in sections:
                assert reader.has_section(tag)
            assert not reader.has_section(b"section-999")
            assert list(reader.tags) == sorted(tag for tag, _ in sections)

    def test_str_and_bytes_tags_are_equivalent(self, pack):
        write_container(pack, [("café", b"x")])
        with ContainerReader(pack) as reader:
            assert reader.has_section("café".encode("utf-8"))

    def test_incremental_section_writer(self, pack):
        with ContainerWriter(pack) as writer:
            out = writer.get_writer("streamed")
            for chunk in (b"abc", b"", b"defg"):
                out.write(chunk)
            assert out.tell() == 7
            writer.append_buffer(b"tail", "next")

        assert read_all(pack) == {b"streamed": b"abcdefg", b"next": b"tail"}

    def test_empty_container(self, pack):
        with ContainerWriter(pack):
            pass

        assert pack.read_bytes() == (8).to_bytes(8, "little") + b"\x00"
        with ContainerReader(pack) as reader:
            assert len(reader) == 0
            assert not reader.has_section("a")

    def test_read_from_stream(self, pack):
        write_container(pack, [("a", b"hello")])
        reader = ContainerReader.open(io.BytesIO(pack.read_bytes()))
        assert reader.read_section("a") == b"hello"
        assert reader.path is None


class TestSizePatching:
    def test_size_known_after_next_section(self, pack):
        with ContainerWriter(pack) as writer:
            writer.append_buffer(b"x" * 10, "a")
            writer.get_writer("b")
            assert writer.get_entry("a").size == 10
            assert writer.get_entry("b").size == 0

    def test_size_known_after_finish(self, pack):
        writer = ContainerWriter(pack)
        writer.append_buffer(b"x" * 10, "a")
        writer.finish()
        assert writer.get_entry("a").size == 10
        assert writer.finished

    def test_save_current_size(self, pack):
        with ContainerWriter(pack) as writer:
            assert writer.save_current_size() == HEADER_SIZE
            out = writer.get_writer("a")
            out.write(b"12345")
            assert writer.save_current_size() == HEADER_SIZE + 5
            assert writer.get_entry("a").size == 5


class TestAppend:
    def test_append_after_finish(self, pack):
        write_container(pack, [("A", b"alpha" * 100), ("B", b"beta")])
        write_container(pack, [("C", b"gamma")], mode=OpenMode.APPEND)

        assert read_all(pack) == {b"A": b"alpha" * 100, b"B": b"beta", b"C": b"gamma"}
        assert_no_overlap(pack)

    def test_append_discards_old_index(self, pack):
        # A large old index followed by a tiny new section
        sections = [(f"long-tag-name-{i:04d}", b"d") for i in range(200)]
        write_container(pack, sections)
        write_container(pack, [("tiny", b"t")], mode=OpenMode.APPEND)

        with ContainerReader(pack) as reader:
            assert reader.read_section("tiny") == b"t"
            assert len(reader) == 201

    def test_append_nothing_keeps_container(self, pack):
        write_container(pack, [("a", b"1"), ("b", b"")])
        before = pack.read_bytes()

        with ContainerWriter(pack, OpenMode.APPEND):
            pass

        assert pack.read_bytes() == before

    def test_append_after_trailing_empty_section(self, pack):
        write_container(pack, [("data", b"payload"), ("a-empty", b"")])
        write_container(pack, [("more", b"++")], mode=OpenMode.APPEND)

        assert read_all(pack) == {b"data": b"payload", b"a-empty": b"", b"more": b"++"}

    def test_append_to_empty_container(self, pack):
        write_container(pack, [])
        write_container(pack, [("a", b"1")], mode=OpenMode.APPEND)
        assert read_all(pack) == {b"a": b"1"}

    def test_append_rejects_existing_tag(self, pack):
        write_container(pack, [("a", b"1")])
        with ContainerWriter(pack, OpenMode.APPEND) as writer:
            with pytest.raises(DuplicateSection):
                writer.append_buffer(b"2", "a")
        assert read_all(pack) == {b"a": b"1"}

    def test_append_twice(self, pack):
        write_container(pack, [("a", b"1")])
        write_container(pack, [("b", b"22")], mode=OpenMode.APPEND)
        write_container(pack, [("c", b"333")], mode=OpenMode.APPEND)
        assert read_all(pack) == {b"a": b"1", b"b": b"22", b"c": b"333"}

    def test_append_to_missing_file(self, tmp_path):
        with pytest.raises(OpenError):
            ContainerWriter(tmp_path / "missing.pack", OpenMode.APPEND)

    def test_append_to_unfinished_file(self, pack):
        pack.write_bytes(b"\x00" * 8 + b"junk")
        with pytest.raises(CorruptIndex):
            ContainerWriter(pack, OpenMode.APPEND)
        assert pack.read_bytes() == b"\x00" * 8 + b"junk"


class TestWriteExisting:
    def test_overwrite_in_place(self, pack):
        write_container(pack, [("a", b"aaaa"), ("b", b"bbbb"), ("c", b"cccc")])

        with ContainerWriter(pack, OpenMode.WRITE_EXISTING) as writer:
            with writer.get_existing_writer("b") as out:
                out.write(b"BBBB")

        assert read_all(pack) == {b"a": b"aaaa", b"b": b"BBBB", b"c": b"cccc"}

    def test_add_section(self, pack):
        write_container(pack, [("a", b"aaaa")])
        write_container(pack, [("b", b"bb")], mode=OpenMode.WRITE_EXISTING)
        assert read_all(pack) == {b"a": b"aaaa", b"b": b"bb"}

    def test_existing_writer_missing_tag(self, pack):
        write_container(pack, [("a", b"aaaa")])
        with ContainerWriter(pack, OpenMode.WRITE_EXISTING) as writer:
            with pytest.raises(SectionNotFound):
                writer.get_existing_writer("zzz")

    def test_existing_writer_in_create_mode(self, pack):
        with ContainerWriter(pack) as writer:
            writer.append_buffer(b"1111", "a")
            writer.append_buffer(b"2222", "b")
            writer.get_existing_writer("a").write(b"9")

        assert read_all(pack) == {b"a": b"9111", b"b": b"2222"}


class TestStreams:
    def test_append_from_stream_in_chunks(self, pack):
        payload = bytes(range(256)) * 40
        with ContainerWriter(pack) as writer:
            writer.append_from_stream(io.BytesIO(payload), "big")

        assert read_all(pack) == {b"big": payload}

    def test_append_from_section_reader(self, tmp_path):
        src = tmp_path / "src.pack"
        dst = tmp_path / "dst.pack"
        write_container(src, [("x", b"copied" * 1000)])

        with ContainerReader(src) as reader, ContainerWriter(dst) as writer:
            writer.append_from_stream(reader.get_reader("x"), "y")

        assert read_all(dst) == {b"y": b"copied" * 1000}

    def test_append_file(self, tmp_path, pack):
        source = tmp_path / "input.bin"
        source.write_bytes(b"file contents")
        with ContainerWriter(pack) as writer:
            writer.append_file(source, "file")
        assert read_all(pack) == {b"file": b"file contents"}

    def test_short_source_raises(self, pack):
        class ShortStream(io.BytesIO):
            def read(self, size=-1):
                return b""

        with pytest.raises(OSError):
            with ContainerWriter(pack) as writer:
                writer.append_from_stream(ShortStream(b"declared"), "short")

        with ContainerReader(pack) as reader:
            assert reader.has_section("short")

    def test_section_reader_cursor(self, pack):
        write_container(pack, [("a", b"0123456789")])
        with ContainerReader(pack) as reader:
            section = reader.get_reader("a")
            assert len(section) == 10
            assert section.read(3) == b"012"
            assert section.tell() == 3
            section.seek(-2, io.SEEK_END)
            assert section.read() == b"89"
            assert section.read() == b""
            assert section.read_at(4, 100) == b"456789"

            sub = section.sub_reader(2, 4)
            assert sub.read() == b"2345"
            with pytest.raises(ValueError):
                section.sub_reader(8, 5)

    def test_concurrent_readers(self, pack):
        sections = {f"s{i}".encode(): bytes([i]) * (1000 + i) for i in range(32)}
        write_container(pack, sections.items())

        with ContainerReader(pack) as reader:
            def fetch(tag):
                section = reader.get_reader(tag)
                chunks = []
                while True:
                    chunk = section.read(97)
                    if not chunk:
                        break
                    chunks.append(chunk)
                return tag, b"".join(chunks)

            with ThreadPoolExecutor(max_workers=8) as pool:
                results = dict(pool.map(fetch, list(sections) * 4))

        assert results == sections


class TestLifecycle:
    def test_finish_twice(self, pack):
        writer = ContainerWriter(pack)
        writer.finish()
        with pytest.raises(RuntimeError):
            writer.finish()

    def test_mutation_after_finish(self, pack):
        writer = ContainerWriter(pack)
        out = writer.get_writer("a")
        writer.finish()

        with pytest.raises(RuntimeError):
            writer.get_writer("b")
        with pytest.raises(RuntimeError):
            writer.append_buffer(b"x", "c")
        with pytest.raises(RuntimeError):
            out.write(b"late")

    def test_superseded_section_writer(self, pack):
        with ContainerWriter(pack) as writer:
            first = writer.get_writer("a")
            first.write(b"1")
            writer.get_writer("b")
            with pytest.raises(RuntimeError):
                first.write(b"2")

    def test_duplicate_tag(self, pack):
        with ContainerWriter(pack) as writer:
            writer.append_buffer(b"1", "a")
            with pytest.raises(DuplicateSection):
                writer.get_writer(b"a")

    def test_finish_on_exception(self, pack):
        with pytest.raises(ValueError):
            with ContainerWriter(pack) as writer:
                writer.append_buffer(b"kept", "a")
                raise ValueError("boom")

        assert read_all(pack) == {b"a": b"kept"}

    def test_close_finishes(self, pack):
        writer = ContainerWriter(pack)
        writer.append_buffer(b"1", "a")
        writer.close()
        writer.close()
        assert writer.finished
        assert read_all(pack) == {b"a": b"1"}

    def test_garbage_collection_finishes(self, pack):
        writer = ContainerWriter(pack)
        writer.append_buffer(b"1", "a")
        del writer
        gc.collect()
        assert read_all(pack) == {b"a": b"1"}

    def test_create_truncates(self, pack):
        write_container(pack, [("old", b"old data")])
        write_container(pack, [("new", b"n")])
        assert read_all(pack) == {b"new": b"n"}


class TestCorruptFiles:
    def test_too_small(self, pack):
        pack.write_bytes(b"\x01\x02")
        with pytest.raises(OpenError):
            ContainerReader(pack)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OpenError):
            ContainerReader(tmp_path / "nope.pack")

    def test_header_past_end(self, pack):
        pack.write_bytes((100).to_bytes(8, "little") + b"\x00")
        with pytest.raises(CorruptIndex):
            ContainerReader(pack)

    def test_unsorted_index(self, pack):
        pack.write_bytes(
            (10).to_bytes(8, "little") + b"ab" + b"\x02" + b"\x01b\x08\x01" + b"\x01a\x09\x01"
        )
        with pytest.raises(CorruptIndex, match="sorted"):
            ContainerReader(pack)

    def test_section_past_index(self, pack):
        pack.write_bytes((10).to_bytes(8, "little") + b"ab" + b"\x01\x01a\x08\x05")
        with pytest.raises(CorruptIndex):
            ContainerReader(pack)

    def test_corrupt_index_is_open_error(self):
        assert issubclass(CorruptIndex, OpenError)
