"""
Tests for the on-disk append file and the record splitter.
"""

import pytest

from simio.constants import FILE_TAIL_CHUNK_BYTES
from simio.errors import FileOpenError
from simio.files import AppendFile, RealFile, last_records


class TestLastRecords:
    """Tests for splitting raw bytes into records."""

    def test_trailing_newline_terminates(self):
        """Test a trailing newline does not produce an empty record."""
        assert last_records(b"a\nb\nc\n", 2) == ["b", "c"]

    def test_unterminated_final_record(self):
        """Test a final record without a newline is still a record."""
        assert last_records(b"a\nb", 5) == ["a", "b"]

    def test_empty_and_zero(self):
        """Test empty input and a zero count."""
        assert last_records(b"", 5) == []
        assert last_records(b"a\n", 0) == []

    def test_invalid_utf8_is_replaced(self):
        """Test undecodable bytes do not raise."""
        assert last_records(b"ok\n\xff\n", 2) == ["ok", "\ufffd"]

    def test_partial_first_record_dropped_by_count(self):
        """Test a chunk starting mid-record only loses records beyond n."""
        assert last_records(b"cord 1\nrecord 2\nrecord 3\n", 2) == ["record 2", "record 3"]


class TestRealFile:
    """Tests for RealFile on the local filesystem."""

    def test_satisfies_protocol(self, output_path):
        """Test RealFile is an AppendFile."""
        real_file = RealFile.open(output_path)
        try:
            assert isinstance(real_file, AppendFile)
        finally:
            real_file._handle.close()

    def test_open_creates_file(self, output_path):
        """Test opening a missing path creates it."""
        real_file = RealFile.open(output_path)
        real_file._handle.close()

        assert output_path.exists()

    def test_open_missing_directory_fails(self, tmp_path):
        """Test an unopenable path raises FileOpenError."""
        with pytest.raises(FileOpenError):
            RealFile.open(tmp_path / "missing" / "output.txt")

    @pytest.mark.asyncio
    async def test_write_and_tail(self, output_path):
        """Test records written come back from the tail, oldest first."""
        real_file = RealFile.open(output_path)
        for i in range(7):
            assert await real_file.write(f"record {i}\n") == len(f"record {i}\n")
        await real_file.fsync()

        tail = await real_file.tail_entries(5)
        await real_file.close()

        assert tail == [f"record {i}" for i in range(2, 7)]
        assert output_path.read_text().count("\n") == 7

    @pytest.mark.asyncio
    async def test_tail_with_fewer_records(self, output_path):
        """Test asking for more records than exist returns them all."""
        real_file = RealFile.open(output_path)
        for i in range(3):
            await real_file.write(f"record {i}\n")

        tail = await real_file.tail_entries(5)
        await real_file.close()

        assert tail == ["record 0", "record 1", "record 2"]

    @pytest.mark.asyncio
    async def test_tail_of_empty_file(self, output_path):
        """Test an empty file has no records."""
        real_file = RealFile.open(output_path)

        tail = await real_file.tail_entries(5)
        await real_file.close()

        assert tail == []

    @pytest.mark.asyncio
    async def test_tail_spans_chunks(self, output_path):
        """Test a tail larger than one chunk is stitched together correctly."""
        real_file = RealFile.open(output_path)
        records = [f"record {i:04d} " + "x" * 40 for i in range(200)]
        for record in records:
            await real_file.write(record + "\n")

        tail = await real_file.tail_entries(60)
        await real_file.close()

        assert sum(len(r) + 1 for r in records[-60:]) > FILE_TAIL_CHUNK_BYTES
        assert tail == records[-60:]

    @pytest.mark.asyncio
    async def test_tail_with_record_larger_than_chunk(self, output_path):
        """Test records longer than a chunk are read whole."""
        real_file = RealFile.open(output_path)
        records = [c * (FILE_TAIL_CHUNK_BYTES * 2 + 17) for c in "abc"]
        for record in records:
            await real_file.write(record + "\n")

        tail = await real_file.tail_entries(2)
        await real_file.close()

        assert tail == records[1:]

    @pytest.mark.asyncio
    async def test_appends_after_existing_contents(self, output_path):
        """Test reopening appends after what an earlier run left behind."""
        output_path.write_text("old 1\nold 2\n")
        real_file = RealFile.open(output_path)

        await real_file.write("new 1\n")
        tail = await real_file.tail_entries(5)
        await real_file.close()

        assert tail == ["old 1", "old 2", "new 1"]

    @pytest.mark.asyncio
    async def test_read_from_start(self, output_path):
        """Test reads start at the beginning and advance their own cursor."""
        output_path.write_text("hello world\n")
        real_file = RealFile.open(output_path)

        first = await real_file.read(5)
        await real_file.write("more\n")
        second = await real_file.read(6)
        await real_file.close()

        assert first == b"hello"
        assert second == b" world"
        assert output_path.read_text() == "hello world\nmore\n"
