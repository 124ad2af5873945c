import pytest

from et_common.files import ensure_exists_and_open

pytestmark = [pytest.mark.unit, pytest.mark.unit_common]


def test_creates_parent_directories(tmp_path):
    target = tmp_path / "logs" / "nested" / "out.log"
    with ensure_exists_and_open(target, truncate=False) as fh:
        fh.write(b"hello")
    assert target.read_bytes() == b"hello"


def test_truncate_recreates_existing_file(tmp_path):
    target = tmp_path / "out.json"
    target.write_bytes(b"old contents")
    with ensure_exists_and_open(target, truncate=True) as fh:
        fh.write(b"new")
    assert target.read_bytes() == b"new"


def test_append_keeps_existing_content(tmp_path):
    target = tmp_path / "cmd.log"
    target.write_bytes(b"first\n")
    with ensure_exists_and_open(target, truncate=False) as fh:
        fh.write(b"second\n")
    assert target.read_bytes() == b"first\nsecond\n"


def test_directory_target_is_rejected(tmp_path):
    with pytest.raises(IsADirectoryError):
        ensure_exists_and_open(tmp_path, truncate=True)
